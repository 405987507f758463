"""
Pipeline Orchestration Module

Coordinates a wall detection run: grid sizing from the scene, image
loading, segmentation, optional cleanup and pixelization, edge
detection, grid wall extraction and scaling into scene coordinates.
"""

import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import numpy as np

from .config import PipelineConfig, load_config
from .constants import (
    DEFAULT_GRID_SIZE,
    CELLS_PER_GRID_DIVISOR,
    Stage,
    EdgeMethod,
)
from .exceptions import PipelineError, PipelineCancelledError
from .edges.canny import detect_edges_canny
from .edges.kovalevsky import detect_edges_kovalevsky
from .io.image_loader import open_image, image_to_buffer
from .io.json_writer import (
    generate_json_filename,
    generate_merged_filename,
    write_walls_to_json,
    read_wall_records,
    write_merge_result,
)
from .io.preview import render_walls_preview, generate_preview_filename
from .raster.buffer import PixelBuffer
from .raster.filters import median_filter, pixelize, brighten_filter, lighten
from .raster.regions import remove_small_regions, remove_small_holes
from .raster.segmentation import KMeansResult, kmeans_segment, separate_inside
from .walls.grid_extractor import identify_walls
from .walls.segment import WallSegment
from .walls.wall_merger import merge_wall_records


logger = logging.getLogger(__name__)


@dataclass
class SceneGeometry:
    """Scene size, grid size and background offset in scene pixels."""
    width: float
    height: float
    grid_size: Optional[float] = DEFAULT_GRID_SIZE
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass
class GridConfig:
    """Sizing for one run, derived from the scene."""
    cell_size: int
    resolution_scale: int
    image_width: int
    image_height: int
    map_width: int
    map_height: int
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def cells_x(self) -> int:
        return self.map_width // self.cell_size

    @property
    def cells_y(self) -> int:
        return self.map_height // self.cell_size


@dataclass
class DetectionResult:
    """Result from a wall detection run."""
    walls: List[WallSegment]
    image_walls: List[WallSegment]
    grid: GridConfig
    edge_buffer: PixelBuffer
    source: Optional[PixelBuffer] = None
    kmeans: Optional[KMeansResult] = None
    stage_times: Dict[str, float] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    processing_time: float = 0.0


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_grid_config(
    scene: SceneGeometry,
    sub_cell_scale: int = 1,
    resolution_scale: Optional[float] = None
) -> GridConfig:
    """
    Derive cell size and working resolution from the scene.

    The resolution scale defaults to grid / (sub_cell_scale * 7) so a
    cell is about seven image pixels wide. It is then lowered until the
    cell size is an integer to within one part in the scene's cell count,
    keeping walls from drifting off the grid across the map.

    Args:
        scene: Scene geometry
        sub_cell_scale: Wall cells per scene grid cell (at least 1)
        resolution_scale: Scene pixels per image pixel; None to derive

    Returns:
        GridConfig for the run
    """
    grid = scene.grid_size or DEFAULT_GRID_SIZE
    width = scene.width
    height = scene.height
    sub = max(sub_cell_scale or 1, 1)

    if width <= 0 or height <= 0:
        raise PipelineError(f"Scene size must be positive, got {width}x{height}", Stage.GRID)

    requested = resolution_scale if resolution_scale is not None else grid / (sub * CELLS_PER_GRID_DIVISOR)
    scale = _round_half_up(max(requested, 1))

    tolerance = 1 / max(width * sub / grid, height * sub / grid)
    while scale > 1 and (grid / (scale * sub)) % 1 > tolerance:
        scale -= 1
        logger.debug(f"Adjusted resolution scale to {scale}")

    cell_size = math.floor(grid / (scale * sub))
    if cell_size < 1:
        raise PipelineError(f"Grid size {grid} is too small for sub-cell scale {sub}", Stage.GRID)

    image_width = math.floor(width / scale)
    image_height = math.floor(height / scale)
    map_width = (image_width // cell_size) * cell_size
    map_height = (image_height // cell_size) * cell_size
    if map_width < 1 or map_height < 1:
        raise PipelineError(
            f"Scene {width}x{height} is smaller than one {cell_size}px cell at scale {scale}", Stage.GRID
        )

    return GridConfig(
        cell_size=cell_size,
        resolution_scale=scale,
        image_width=image_width,
        image_height=image_height,
        map_width=map_width,
        map_height=map_height,
        offset_x=scene.offset_x,
        offset_y=scene.offset_y,
    )


class _StageRunner:
    """Runs stages in order, polling for cancellation and timing each one."""

    def __init__(self, cancel_check: Optional[Callable[[], bool]] = None):
        self.cancel_check = cancel_check
        self.times: Dict[str, float] = {}

    def run(self, stage: str, func, *args, **kwargs):
        if self.cancel_check is not None and self.cancel_check():
            raise PipelineCancelledError(stage)

        logger.debug(f"Stage {stage}")
        start = time.time()
        try:
            result = func(*args, **kwargs)
        except (PipelineError, PipelineCancelledError):
            raise
        except Exception as e:
            raise PipelineError(str(e), stage) from e
        self.times[stage] = self.times.get(stage, 0.0) + time.time() - start
        return result


def _detect_edges(buffer: PixelBuffer, config: PipelineConfig, thinning: bool) -> PixelBuffer:
    if config.edge_method == EdgeMethod.CANNY:
        return detect_edges_canny(
            buffer,
            low_threshold=config.canny.low_threshold,
            high_threshold=config.canny.high_threshold,
            sigma=config.canny.sigma,
        )
    return detect_edges_kovalevsky(buffer, threshold=config.kovalevsky.threshold, thinning=thinning)


def detect_walls(
    buffer: PixelBuffer,
    grid: GridConfig,
    config: Optional[PipelineConfig] = None,
    original: Optional[PixelBuffer] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
    rng: Optional[np.random.Generator] = None
) -> DetectionResult:
    """
    Run the pixel stages on a prepared buffer.

    Steps:
    1. k-means colour segmentation
    2. Optional small region / hole cleanup
    3. Pixelize: inside/outside split, median denoise, snap to cells
    4. Edge detection and median cleanup
    5. Internal walls: thinned edges of the original image, lightened in
       and dilated
    6. Grid wall extraction, scaled and offset into scene space

    Args:
        buffer: Map image at working resolution; modified in place
        grid: Grid sizing for the run
        config: Pipeline settings (defaults if None)
        original: Unsegmented image for the internal wall pass; defaults to
            a copy of ``buffer`` taken before segmentation
        cancel_check: Polled before each stage; returning True cancels
        rng: Random source for k-means seeding; overrides config.kmeans.seed

    Returns:
        DetectionResult

    Raises:
        PipelineError: If any stage fails
        PipelineCancelledError: If cancel_check returns True
    """
    start_time = time.time()
    config = config or PipelineConfig()
    config.validate()
    runner = _StageRunner(cancel_check)
    warnings = []

    if original is None:
        original = buffer.copy()
    if rng is None:
        rng = np.random.default_rng(config.kmeans.seed)

    logger.info(
        f"Detecting walls: {buffer.width}x{buffer.height}, cell size {grid.cell_size}px, "
        f"resolution scale {grid.resolution_scale}"
    )

    kmeans = runner.run(
        Stage.SEGMENTATION, kmeans_segment, buffer,
        k=config.kmeans.k,
        max_iterations=config.kmeans.max_iterations,
        convergence_threshold=config.kmeans.convergence_threshold,
        rng=rng,
    )
    if not kmeans.converged:
        warnings.append(f"k-means did not converge in {kmeans.iterations} iterations")

    if config.regions.enabled:
        runner.run(
            Stage.DENOISE, remove_small_regions, buffer,
            max_region_size=config.regions.max_region_size,
            include_alpha=config.regions.include_alpha,
        )
    if config.holes.enabled:
        runner.run(
            Stage.DENOISE, remove_small_holes, buffer,
            max_hole_size=config.holes.max_hole_size,
            threshold=config.holes.threshold,
        )

    if config.pixelize:
        runner.run(Stage.SEPARATION, separate_inside, buffer, config.outside_fraction)
        runner.run(Stage.DENOISE, median_filter, buffer, config.segmentation_median_kernel)
        runner.run(Stage.PIXELIZE, pixelize, buffer, grid.cell_size)

    working = buffer
    if config.edge_detection:
        working = runner.run(Stage.EDGE_DETECTION, _detect_edges, working, config, False)
        runner.run(Stage.EDGE_DETECTION, median_filter, working, config.edge_median_kernel)

    if config.internal_walls:
        internal = runner.run(Stage.INTERNAL_WALLS, _detect_edges, original, config, True)
        runner.run(Stage.INTERNAL_WALLS, lighten, working, internal)
        runner.run(Stage.INTERNAL_WALLS, brighten_filter, working, config.brighten_kernel)

    image_walls = runner.run(
        Stage.WALL_EXTRACTION, identify_walls, working, grid.cell_size, config.wall_threshold
    )
    walls = [
        w.scaled(grid.resolution_scale, grid.offset_x, grid.offset_y) for w in image_walls
    ]

    if not walls:
        warnings.append("No walls detected")
        logger.warning("No walls detected")

    processing_time = time.time() - start_time
    logger.info(f"Detected {len(walls)} walls in {processing_time:.1f}s")
    for w in warnings:
        logger.debug(f"  - {w}")

    return DetectionResult(
        walls=walls,
        image_walls=image_walls,
        grid=grid,
        edge_buffer=working,
        source=original,
        kmeans=kmeans,
        stage_times=dict(runner.times),
        warnings=warnings,
        processing_time=processing_time,
    )


def prepare_buffer(image_path: Union[str, Path], grid: GridConfig) -> PixelBuffer:
    """Load an image scaled to the working resolution and cropped to whole cells."""
    image = open_image(image_path)
    return image_to_buffer(
        image,
        grid.map_width,
        grid.map_height,
        scaled_width=grid.image_width,
        scaled_height=grid.image_height,
    )


def scene_to_walls(
    image_path: Union[str, Path],
    scene: SceneGeometry,
    config: Optional[PipelineConfig] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
    rng: Optional[np.random.Generator] = None
) -> DetectionResult:
    """
    Detect walls for a scene from its background image.

    Args:
        image_path: Background image
        scene: Scene geometry (size, grid, offset)
        config: Pipeline settings (defaults if None)
        cancel_check: Polled before each stage
        rng: Random source for k-means seeding

    Returns:
        DetectionResult with walls in scene coordinates
    """
    config = config or PipelineConfig()
    config.validate()

    grid = compute_grid_config(scene, config.sub_cell_scale, config.resolution_scale)
    logger.info(f"Processing: {image_path}")
    logger.debug(
        f"Grid: cell {grid.cell_size}px, scale {grid.resolution_scale}, "
        f"image {grid.image_width}x{grid.image_height}, map {grid.map_width}x{grid.map_height}"
    )

    buffer = _StageRunner(cancel_check).run(Stage.LOAD, prepare_buffer, image_path, grid)

    return detect_walls(
        buffer, grid, config,
        original=buffer.copy(),
        cancel_check=cancel_check,
        rng=rng,
    )


@dataclass
class PipelineResult:
    """Result from a command-line run."""
    input_file: str
    output_dir: str
    total_walls: int
    json_path: Optional[str]
    preview_path: Optional[str]
    warnings: List[str]
    processing_time: float


def build_config(args) -> PipelineConfig:
    """Load settings (file or defaults) and apply command-line overrides."""
    config_path = getattr(args, "config", None)
    config = load_config(config_path) if config_path else PipelineConfig()

    overrides = {
        "sub_cell_scale": getattr(args, "sub_cell_scale", None),
        "resolution_scale": getattr(args, "resolution_scale", None),
        "edge_method": getattr(args, "edge_method", None),
        "wall_threshold": getattr(args, "wall_threshold", None),
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    if getattr(args, "k", None) is not None:
        config.kmeans.k = args.k
    if getattr(args, "seed", None) is not None:
        config.kmeans.seed = args.seed
    if getattr(args, "no_pixelize", False):
        config.pixelize = False
    if getattr(args, "no_edge_detection", False):
        config.edge_detection = False
    if getattr(args, "internal_walls", False):
        config.internal_walls = True

    config.validate()
    return config


def run_pipeline(args) -> PipelineResult:
    """
    Detect walls for one image from parsed command-line arguments.

    Args:
        args: Parsed arguments of the ``detect`` command

    Returns:
        PipelineResult with output paths
    """
    start_time = time.time()

    # Setup logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format='%(message)s')

    config = build_config(args)

    width, height = args.width, args.height
    if width is None or height is None:
        native_width, native_height = open_image(args.input).size
        width = width or native_width
        height = height or native_height

    scene = SceneGeometry(
        width=width,
        height=height,
        grid_size=args.grid,
        offset_x=args.offset_x,
        offset_y=args.offset_y,
    )

    detection = scene_to_walls(args.input, scene, config)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    json_path = generate_json_filename(args.input, args.output)
    write_walls_to_json(
        detection.walls, json_path,
        input_file=args.input,
        metadata={
            "scene_width": width,
            "scene_height": height,
            "grid_size": scene.grid_size,
            "cell_size": detection.grid.cell_size,
            "resolution_scale": detection.grid.resolution_scale,
        },
    )
    logger.info(f"JSON written: {json_path}")

    preview_path = None
    if not args.no_preview and detection.source is not None:
        preview_path = generate_preview_filename(args.input, args.output)
        render_walls_preview(detection.source, detection.image_walls, preview_path)

    processing_time = time.time() - start_time

    # Summary
    logger.info(f"\nSummary:")
    logger.info(f"  Walls detected: {len(detection.walls)}")
    logger.info(f"  Cell size: {detection.grid.cell_size}px at scale {detection.grid.resolution_scale}")
    logger.info(f"  Processing time: {processing_time:.1f}s")

    if detection.warnings and args.verbose:
        logger.info(f"\nWarnings ({len(detection.warnings)}):")
        for w in detection.warnings[:10]:
            logger.info(f"  - {w}")

    return PipelineResult(
        input_file=args.input,
        output_dir=args.output,
        total_walls=len(detection.walls),
        json_path=json_path,
        preview_path=preview_path,
        warnings=detection.warnings,
        processing_time=processing_time,
    )


def run_merge(args) -> PipelineResult:
    """
    Merge committed wall records read from JSON.

    Args:
        args: Parsed arguments of the ``merge`` command

    Returns:
        PipelineResult with the merged JSON path
    """
    start_time = time.time()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format='%(message)s')

    records = read_wall_records(args.input)
    logger.info(f"Merging {len(records)} walls from {args.input}")

    result = merge_wall_records(records)
    warnings = []
    if result.skipped_ids:
        warnings.append(f"{len(result.skipped_ids)} walls with doors or special senses left unchanged")

    Path(args.output).mkdir(parents=True, exist_ok=True)
    json_path = generate_merged_filename(args.input, args.output)
    write_merge_result(result.segments, result.replaced_ids, json_path, input_file=args.input)
    logger.info(f"JSON written: {json_path}")

    return PipelineResult(
        input_file=args.input,
        output_dir=args.output,
        total_walls=len(result.segments),
        json_path=json_path,
        preview_path=None,
        warnings=warnings,
        processing_time=time.time() - start_time,
    )
