# Image loading, preview rendering and JSON output

from .image_loader import (
    open_image,
    image_to_buffer,
    load_pixel_buffer,
)

from .preview import (
    render_walls_preview,
    generate_preview_filename,
)

from .json_writer import (
    generate_json_filename,
    generate_merged_filename,
    build_output_json,
    write_walls_to_json,
    read_wall_records,
    write_merge_result,
)

__all__ = [
    # Image Loader
    "open_image",
    "image_to_buffer",
    "load_pixel_buffer",
    # Preview
    "render_walls_preview",
    "generate_preview_filename",
    # JSON Writer
    "generate_json_filename",
    "generate_merged_filename",
    "build_output_json",
    "write_walls_to_json",
    "read_wall_records",
    "write_merge_result",
]
