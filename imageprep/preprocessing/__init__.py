"""
Preprocessing Module - Batch transform and label image folders

Example:
    from imageprep.preprocessing import BatchPipeline
    from imageprep.config import PipelineConfig, TransformConfig, parse_resize

    config = PipelineConfig(
        input_dir="raw/",
        output_dir="prepared/",
        transform=TransformConfig(resize=parse_resize("50%"), rotation=90),
    )
    result = BatchPipeline(config).run()
"""

from .codec import ImageDecodeError, ImageWriteError, read_image, write_image
from .discovery import IMAGE_EXTENSIONS, has_extension, iter_files
from .labels import LabelRegistry
from .manifest import MANIFEST_FILENAME, ManifestRecord, read_manifest, write_manifest
from .pipeline import BatchPipeline, FileFailure, FileOutcome, RunResult
from .transforms import (
    BaseTransform,
    ResizeTransform,
    RotateTransform,
    FlipTransform,
    apply_transforms,
    build_transforms,
    transform,
)

__all__ = [
    "ImageDecodeError", "ImageWriteError", "read_image", "write_image",
    "IMAGE_EXTENSIONS", "has_extension", "iter_files",
    "LabelRegistry",
    "MANIFEST_FILENAME", "ManifestRecord", "read_manifest", "write_manifest",
    "BatchPipeline", "FileFailure", "FileOutcome", "RunResult",
    "BaseTransform", "ResizeTransform", "RotateTransform", "FlipTransform",
    "apply_transforms", "build_transforms", "transform",
]
