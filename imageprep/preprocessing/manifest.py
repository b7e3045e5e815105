"""
Pydantic schema and JSON reader/writer for the training manifest.

The manifest is a JSON list of records:

    [
      {"class_index": 0, "filepaths": "out/cats/a.png", "labels": "cats", "dataset": "out"},
      ...
    ]
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "training_data.json"


class ManifestRecord(BaseModel):
    """One processed output image."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    class_index: int = Field(
        ...,
        ge=0,
        description="Class index of the label",
        validation_alias=AliasChoices("class_index", "class index"),
    )
    filepaths: str = Field(..., description="Path of the output image")
    labels: str = Field(..., description="Label taken from the input's parent directory")
    dataset: str = Field(
        ...,
        description="Base name of the output root",
        validation_alias=AliasChoices("dataset", "data set", "data set\r"),
    )


def read_manifest(path: Union[str, Path]) -> List[ManifestRecord]:
    """
    Load manifest records from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not a JSON list of valid records.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Manifest {path} is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"Manifest {path} must contain a JSON list, got {type(data).__name__}")

    try:
        records = [ManifestRecord.model_validate(item) for item in data]
    except ValidationError as e:
        raise ValueError(f"Manifest {path} has invalid records: {e}") from e

    logger.info(f"Loaded {len(records)} records from manifest {path}")
    return records


def write_manifest(records: Iterable[ManifestRecord], path: Union[str, Path]) -> Path:
    """
    Write records as pretty-printed JSON, replacing any existing file.

    Records are sorted by output path. The file is written to a temporary
    sibling first and moved into place, so readers never see a partial file.

    Returns:
        Path of the written manifest.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [r.model_dump() for r in sorted(records, key=lambda r: r.filepaths)]

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    logger.info(f"Training data JSON file created at {path}")
    return path
