"""
JSON Output Module

Writes detected walls as virtual tabletop wall documents and reads
committed wall records back for merging.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..constants import PIPELINE_VERSION, WALLS_JSON_SUFFIX, MERGED_JSON_SUFFIX
from ..exceptions import InvalidArgumentError
from ..walls.segment import WallSegment, WallRecord, wall_document

logger = logging.getLogger(__name__)


def generate_json_filename(input_path: str, output_dir: str, suffix: str = WALLS_JSON_SUFFIX) -> str:
    """
    Generate JSON output filename from the input image.

    Args:
        input_path: Path to input image
        output_dir: Output directory
        suffix: Appended to the input stem

    Returns:
        Full path for JSON output
    """
    return str(Path(output_dir) / f"{Path(input_path).stem}{suffix}")


def generate_merged_filename(input_path: str, output_dir: str) -> str:
    return generate_json_filename(input_path, output_dir, MERGED_JSON_SUFFIX)


def build_output_json(
    walls: Sequence[WallSegment],
    input_file: str = "",
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Build the complete output document.

    Args:
        walls: Walls in scene coordinates
        input_file: Source image path
        metadata: Extra fields merged into the metadata block

    Returns:
        Dictionary with "metadata" and "walls"
    """
    info = {
        "input_file": input_file,
        "processed_date": datetime.now().isoformat(),
        "pipeline_version": PIPELINE_VERSION,
        "total_walls": len(walls),
    }
    if metadata:
        info.update(metadata)

    return {
        "metadata": info,
        "walls": [wall_document(w) for w in walls],
    }


def write_walls_to_json(
    walls: Sequence[WallSegment],
    output_path: Union[str, Path],
    input_file: str = "",
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """
    Write walls to a JSON file.

    Returns:
        Path to the written file
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    document = build_output_json(walls, input_file=input_file, metadata=metadata)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)

    logger.debug(f"Wrote {len(walls)} walls to {path}")
    return str(path)


def read_wall_records(input_path: Union[str, Path]) -> List[WallRecord]:
    """
    Read committed wall records from JSON.

    Accepts either a bare list of wall documents or an object with a
    "walls" list. Documents without an id are numbered by position.
    """
    path = Path(input_path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    documents = data.get("walls") if isinstance(data, dict) else data
    if not isinstance(documents, list):
        raise InvalidArgumentError(f"No wall list found in {path}", "walls")

    records = []
    for index, document in enumerate(documents):
        record = WallRecord.from_dict(document)
        if not record.wall_id:
            record.wall_id = str(index)
        records.append(record)
    return records


def write_merge_result(
    segments: Sequence[WallSegment],
    replaced_ids: Sequence[str],
    output_path: Union[str, Path],
    input_file: str = ""
) -> str:
    """Write merged walls together with the ids of the walls they replace."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    document = build_output_json(segments, input_file=input_file)
    document["replaced_ids"] = list(replaced_ids)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)

    logger.debug(f"Wrote {len(segments)} merged walls replacing {len(replaced_ids)} to {path}")
    return str(path)
