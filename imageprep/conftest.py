"""Shared fixtures: synthetic image trees written with OpenCV."""

import os
from pathlib import Path

import cv2
import numpy as np
import pytest


def write_test_image(path: Path, width: int = 80, height: int = 60, channels: int = 3) -> Path:
    """Write a random image. The format follows the extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    shape = (height, width) if channels == 1 else (height, width, channels)
    img = np.random.randint(0, 255, shape, dtype=np.uint8)
    ok, encoded = cv2.imencode(path.suffix, img)
    assert ok, f"could not encode {path}"
    encoded.tofile(str(path))
    return path


@pytest.fixture
def make_image():
    return write_test_image


@pytest.fixture
def image_tree(tmp_path):
    """
    raw/
    ├── cats/a.jpg
    ├── cats/b.jpg
    └── dogs/c.png
    """
    root = tmp_path / "raw"
    write_test_image(root / "cats" / "a.jpg", 800, 600)
    write_test_image(root / "cats" / "b.jpg", 400, 300)
    write_test_image(root / "dogs" / "c.png", 200, 100)
    return root


@pytest.fixture
def undecodable_tree(image_tree):
    """image_tree plus caf\\xe9/d.jpg, a folder whose name is Latin-1 bytes."""
    raw_name = os.fsencode(image_tree) + b"/caf\xe9"
    folder = Path(os.fsdecode(raw_name))
    if "\udce9" not in folder.name:
        pytest.skip("filesystem encoding decodes Latin-1 names")
    try:
        os.mkdir(raw_name)
    except OSError:
        pytest.skip("filesystem rejects non-UTF-8 names")
    write_test_image(folder / "d.jpg")
    return image_tree
