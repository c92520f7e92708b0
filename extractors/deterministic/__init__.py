"""Framework-independent helpers shared by every plugin."""

from .operation_id import synthesize_operation_id
from .path_params import combine_paths, convert, extract_path_params
from .tags import infer_tags, infer_tags_from_handler

__all__ = [
    "combine_paths",
    "convert",
    "extract_path_params",
    "infer_tags",
    "infer_tags_from_handler",
    "synthesize_operation_id",
]
