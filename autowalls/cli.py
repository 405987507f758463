"""
Command Line Interface Module

Parses command-line arguments for wall detection and wall merging.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .constants import DEFAULT_GRID_SIZE, EdgeMethod


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with the detect and merge commands."""
    parser = argparse.ArgumentParser(
        prog="autowalls",
        description="Detect walls in battle-map images and merge wall segments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  autowalls detect -i map.png -o ./output
  autowalls detect -i map.webp -o ./output --width 4000 --height 3000 --grid 100
  autowalls detect -i map.png -o ./output --internal-walls --seed 7 --verbose
  autowalls merge -i ./output/map_walls.json -o ./output
        """
    )
    commands = parser.add_subparsers(dest="command", required=True)

    # detect
    detect = commands.add_parser("detect", help="Detect walls in a map image")

    detect.add_argument(
        "-i", "--input",
        required=True,
        help="Input image file path"
    )

    detect.add_argument(
        "-o", "--output",
        required=True,
        help="Output directory path"
    )

    detect.add_argument(
        "--config",
        help="YAML settings file (default: built-in defaults)"
    )

    scene_group = detect.add_argument_group('scene geometry')

    scene_group.add_argument(
        "--width",
        type=float,
        help="Scene width in scene pixels (default: image width)"
    )

    scene_group.add_argument(
        "--height",
        type=float,
        help="Scene height in scene pixels (default: image height)"
    )

    scene_group.add_argument(
        "--grid",
        type=float,
        default=DEFAULT_GRID_SIZE,
        help=f"Scene grid size in pixels (default: {DEFAULT_GRID_SIZE})"
    )

    scene_group.add_argument(
        "--offset-x",
        type=float,
        default=0.0,
        help="Horizontal offset of the background in the scene (default: 0)"
    )

    scene_group.add_argument(
        "--offset-y",
        type=float,
        default=0.0,
        help="Vertical offset of the background in the scene (default: 0)"
    )

    detection_group = detect.add_argument_group('detection')

    detection_group.add_argument(
        "--sub-cell-scale",
        type=int,
        help="Wall cells per grid cell (default: 1)"
    )

    detection_group.add_argument(
        "--resolution-scale",
        type=float,
        help="Scene pixels per working pixel (default: derived from grid)"
    )

    detection_group.add_argument(
        "-k", "--k",
        type=int,
        help="Number of colour clusters (default: 10)"
    )

    detection_group.add_argument(
        "--seed",
        type=int,
        help="Random seed for colour clustering"
    )

    detection_group.add_argument(
        "--edge-method",
        choices=[EdgeMethod.KOVALEVSKY, EdgeMethod.CANNY],
        help="Edge detector (default: kovalevsky)"
    )

    detection_group.add_argument(
        "--wall-threshold",
        type=float,
        help="Edge brightness counted as wall (default: 50)"
    )

    detection_group.add_argument(
        "--no-pixelize",
        action="store_true",
        help="Skip the inside/outside split and pixelization"
    )

    detection_group.add_argument(
        "--no-edge-detection",
        action="store_true",
        help="Extract walls straight from the segmented image"
    )

    detection_group.add_argument(
        "--internal-walls",
        action="store_true",
        help="Also detect walls inside rooms from the original image"
    )

    detect.add_argument(
        "--no-preview",
        action="store_true",
        help="Skip the preview image"
    )

    detect.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    # merge
    merge = commands.add_parser("merge", help="Merge collinear wall segments from JSON")

    merge.add_argument(
        "-i", "--input",
        required=True,
        help="Input wall JSON file"
    )

    merge.add_argument(
        "-o", "--output",
        required=True,
        help="Output directory path"
    )

    merge.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    return parser


def validate_args(args: argparse.Namespace) -> Tuple[bool, str]:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Check input file exists
    input_path = Path(args.input)
    if not input_path.exists():
        return False, f"Input file not found: {args.input}"

    if args.command == "merge" and input_path.suffix.lower() != ".json":
        return False, f"Input file must be JSON: {args.input}"

    # Check/create output directory
    output_path = Path(args.output)
    try:
        output_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return False, f"Cannot create output directory: {e}"

    if args.command == "detect":
        if args.config and not Path(args.config).exists():
            return False, f"Settings file not found: {args.config}"

        for name in ("width", "height", "resolution_scale"):
            value = getattr(args, name)
            if value is not None and value <= 0:
                return False, f"--{name.replace('_', '-')} must be positive: {value}"

        if args.grid <= 0:
            return False, f"Grid size must be positive: {args.grid}"

        if args.sub_cell_scale is not None and args.sub_cell_scale < 1:
            return False, f"Sub-cell scale must be at least 1: {args.sub_cell_scale}"

        if args.k is not None and args.k < 1:
            return False, f"k must be at least 1: {args.k}"

    return True, ""


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse and validate command-line arguments.

    Args:
        args: Optional list of arguments (uses sys.argv if None)

    Returns:
        Parsed and validated arguments
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    is_valid, error_msg = validate_args(parsed)
    if not is_valid:
        parser.error(error_msg)

    return parsed


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI."""
    args = parse_args(argv)

    # Import pipeline and run
    from .pipeline import run_pipeline, run_merge

    try:
        if args.command == "merge":
            run_merge(args)
        else:
            run_pipeline(args)
    except KeyboardInterrupt:
        print("\nProcessing cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
