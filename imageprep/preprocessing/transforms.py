"""
Composable Transforms - Individual geometric operations.

Each transform wraps an Albumentations or OpenCV operation and provides a
consistent interface. All transforms inherit from BaseTransform and are
applied in a fixed order: resize -> rotate -> flip.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Union

import albumentations as A
import cv2
import numpy as np

from ..config import ResizeDirective, TransformConfig

logger = logging.getLogger(__name__)


class BaseTransform(ABC):
    """Base class for all transforms."""

    @abstractmethod
    def apply(self, image: np.ndarray) -> np.ndarray:
        """Return a transformed copy of ``image``. The input is never modified."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Transform name for logging."""
        pass


class ResizeTransform(BaseTransform):
    """Resize to an exact size, a percentage, or a fixed width/height."""

    def __init__(self, directive: ResizeDirective):
        self.directive = directive

    @property
    def name(self) -> str:
        return "resize"

    def get_albumentations_transform(self, width: int, height: int) -> A.Resize:
        new_width, new_height = self.directive.target_size(width, height)
        return A.Resize(
            height=new_height,
            width=new_width,
            interpolation=cv2.INTER_LANCZOS4,
            p=1.0,
        )

    def apply(self, image: np.ndarray) -> np.ndarray:
        height, width = image.shape[:2]
        new_width, new_height = self.directive.target_size(width, height)
        if (new_width, new_height) == (width, height):
            return image
        logger.debug(f"Resizing image {width}x{height} -> {new_width}x{new_height}")
        return self.get_albumentations_transform(width, height)(image=image)["image"]


class RotateTransform(BaseTransform):
    """Clockwise rotation by 90, 180 or 270 degrees. Other angles are a no-op."""

    ROTATE_CODES = {
        90: cv2.ROTATE_90_CLOCKWISE,
        180: cv2.ROTATE_180,
        270: cv2.ROTATE_90_COUNTERCLOCKWISE,
    }

    def __init__(self, angle: int):
        self.angle = angle

    @property
    def name(self) -> str:
        return "rotate"

    def apply(self, image: np.ndarray) -> np.ndarray:
        code = self.ROTATE_CODES.get(self.angle)
        if code is None:
            logger.debug(f"Skipping invalid rotation angle {self.angle}")
            return image
        logger.debug(f"Rotating image by {self.angle} degrees")
        return cv2.rotate(image, code)


class FlipTransform(BaseTransform):
    """Horizontal then vertical flip."""

    def __init__(self, horizontal: bool = False, vertical: bool = False):
        self.horizontal = horizontal
        self.vertical = vertical
        self._transform = self.get_albumentations_transform()

    @property
    def name(self) -> str:
        return "flip"

    def get_albumentations_transform(self) -> Union[A.Compose, A.NoOp]:
        transforms = []
        if self.horizontal:
            transforms.append(A.HorizontalFlip(p=1.0))
        if self.vertical:
            transforms.append(A.VerticalFlip(p=1.0))
        return A.Compose(transforms) if transforms else A.NoOp()

    def apply(self, image: np.ndarray) -> np.ndarray:
        if not (self.horizontal or self.vertical):
            return image
        logger.debug(f"Flipping image (horizontal={self.horizontal}, vertical={self.vertical})")
        return self._transform(image=image)["image"]


def build_transforms(config: TransformConfig) -> List[BaseTransform]:
    """Build the ordered transform list for a configuration, logging config warnings."""
    for problem in config.warnings():
        logger.warning(problem)

    transforms: List[BaseTransform] = []
    if config.resize.enabled:
        transforms.append(ResizeTransform(config.resize))
    if config.rotation is not None:
        transforms.append(RotateTransform(config.rotation))
    if config.flip_horizontal or config.flip_vertical:
        transforms.append(FlipTransform(config.flip_horizontal, config.flip_vertical))
    return transforms


def apply_transforms(image: np.ndarray, transforms: List[BaseTransform]) -> np.ndarray:
    """Run ``transforms`` in order and return a contiguous result."""
    for t in transforms:
        image = t.apply(image)
    return np.ascontiguousarray(image)


def transform(image: np.ndarray, config: TransformConfig) -> np.ndarray:
    """
    Apply the configured pipeline: resize -> rotate -> flip-horizontal -> flip-vertical.

    Args:
        image: Decoded image array (H x W or H x W x C).
        config: Transform configuration.

    Returns:
        Transformed image. ``image`` itself is left untouched.
    """
    return apply_transforms(image, build_transforms(config))
