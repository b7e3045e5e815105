"""
imageprep - Batch image preprocessing for classifier datasets

Transforms every image under a folder tree (resize, rotate, flip), writes the
results to a mirrored output tree and records a training manifest that maps
each output file to its folder label and a stable class index.

Example usage:
    from imageprep import BatchPipeline, PipelineConfig, TransformConfig, parse_resize

    config = PipelineConfig(
        input_dir="raw/",
        output_dir="prepared/",
        transform=TransformConfig(resize=parse_resize("320x240"), flip_horizontal=True),
    )
    result = BatchPipeline(config).run()
    print(result.summary())
"""

__version__ = "0.1.0"

# Configuration dataclasses
from .config import (
    PipelineConfig,
    ResizeDirective,
    ResizeMode,
    TransformConfig,
    parse_flip,
    parse_resize,
    parse_rotation,
)

# Pipeline
from .preprocessing import (
    BatchPipeline,
    LabelRegistry,
    ManifestRecord,
    RunResult,
    read_manifest,
    write_manifest,
)

__all__ = [
    # Version
    "__version__",
    # Configs
    "PipelineConfig",
    "ResizeDirective",
    "ResizeMode",
    "TransformConfig",
    "parse_flip",
    "parse_resize",
    "parse_rotation",
    # Pipeline
    "BatchPipeline",
    "LabelRegistry",
    "ManifestRecord",
    "RunResult",
    "read_manifest",
    "write_manifest",
]
