"""
Configuration dataclasses for batch image preprocessing.
Type-safe configuration for transforms and pipeline runs.
"""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple


VALID_ROTATIONS = (90, 180, 270)
FLIP_CHOICES = ("none", "horizontal", "vertical", "both")
OUTPUT_FORMATS = ("png", "jpg", "jpeg")

_EXACT_RE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
_PERCENT_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*%\s*$")
_AXIS_RE = re.compile(r"^\s*(\d+)\s*([wWhH])\s*$")


class ResizeMode(str, Enum):
    """How a resize directive resolves the output size."""
    NONE = "none"
    EXACT = "exact"
    PERCENTAGE = "percentage"
    WIDTH = "width"
    HEIGHT = "height"


@dataclass(frozen=True)
class ResizeDirective:
    """
    A resize request.

    Only the fields relevant to ``mode`` are set:
        EXACT       -> width, height
        PERCENTAGE  -> percent
        WIDTH       -> width (height follows the aspect ratio)
        HEIGHT      -> height (width follows the aspect ratio)
    """
    mode: ResizeMode = ResizeMode.NONE
    width: Optional[int] = None
    height: Optional[int] = None
    percent: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "mode", ResizeMode(self.mode))
        required = {
            ResizeMode.EXACT: ("width", "height"),
            ResizeMode.PERCENTAGE: ("percent",),
            ResizeMode.WIDTH: ("width",),
            ResizeMode.HEIGHT: ("height",),
        }.get(self.mode, ())
        for name in required:
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValueError(
                    f"Resize {name} must be positive for {self.mode.value} mode, got {value}"
                )

    @classmethod
    def exact(cls, width: int, height: int) -> "ResizeDirective":
        return cls(ResizeMode.EXACT, width=width, height=height)

    @classmethod
    def percentage(cls, percent: float) -> "ResizeDirective":
        return cls(ResizeMode.PERCENTAGE, percent=percent)

    @classmethod
    def fixed_width(cls, width: int) -> "ResizeDirective":
        return cls(ResizeMode.WIDTH, width=width)

    @classmethod
    def fixed_height(cls, height: int) -> "ResizeDirective":
        return cls(ResizeMode.HEIGHT, height=height)

    @property
    def enabled(self) -> bool:
        return self.mode is not ResizeMode.NONE

    def target_size(self, width: int, height: int) -> Tuple[int, int]:
        """
        Resolve the output (width, height) for an image of the given size.

        Args:
            width: Source image width in pixels.
            height: Source image height in pixels.

        Returns:
            Tuple of (new_width, new_height), each at least 1.
        """
        if self.mode is ResizeMode.EXACT:
            return self.width, self.height
        if self.mode is ResizeMode.PERCENTAGE:
            return (
                max(1, int(width * self.percent / 100)),
                max(1, int(height * self.percent / 100)),
            )
        if self.mode is ResizeMode.WIDTH:
            return self.width, max(1, round(height * self.width / width))
        if self.mode is ResizeMode.HEIGHT:
            return max(1, round(width * self.height / height)), self.height
        return width, height

    def __str__(self) -> str:
        if self.mode is ResizeMode.EXACT:
            return f"{self.width}x{self.height}"
        if self.mode is ResizeMode.PERCENTAGE:
            return f"{self.percent:g}%"
        if self.mode is ResizeMode.WIDTH:
            return f"{self.width}w"
        if self.mode is ResizeMode.HEIGHT:
            return f"{self.height}h"
        return "none"


def parse_resize(value: Optional[str]) -> ResizeDirective:
    """
    Parse a resize directive from its string form.

    Accepted forms: ``WxH`` (exact), ``N%`` (percentage), ``Nw`` (fixed
    width), ``Nh`` (fixed height). Empty or None means no resize.

    Raises:
        ValueError: If the string is not one of the accepted forms or a
            size is zero.
    """
    if value is None or not value.strip():
        return ResizeDirective()

    match = _EXACT_RE.match(value)
    if match:
        return ResizeDirective.exact(int(match.group(1)), int(match.group(2)))

    match = _PERCENT_RE.match(value)
    if match:
        return ResizeDirective.percentage(float(match.group(1)))

    match = _AXIS_RE.match(value)
    if match:
        size = int(match.group(1))
        if match.group(2).lower() == "w":
            return ResizeDirective.fixed_width(size)
        return ResizeDirective.fixed_height(size)

    raise ValueError(
        f"Invalid resize format {value!r}; expected WIDTHxHEIGHT, N%, Nw or Nh"
    )


def parse_rotation(value: Optional[str]) -> Optional[int]:
    """Parse a rotation angle. Only 90, 180 and 270 are accepted."""
    if value is None or not str(value).strip():
        return None
    try:
        angle = int(value)
    except ValueError:
        raise ValueError(f"Rotation must be an integer angle, got {value!r}") from None
    if angle not in VALID_ROTATIONS:
        raise ValueError(f"Rotation must be one of 90, 180 or 270, got {angle}")
    return angle


def parse_flip(value: Optional[str]) -> Tuple[bool, bool]:
    """Map a flip selection to (horizontal, vertical) flags."""
    choice = (value or "none").strip().lower()
    if choice not in FLIP_CHOICES:
        raise ValueError(f"Flip must be one of {', '.join(FLIP_CHOICES)}, got {value!r}")
    return choice in ("horizontal", "both"), choice in ("vertical", "both")


@dataclass(frozen=True)
class TransformConfig:
    """Geometric transforms applied to every image, in a fixed order."""
    resize: ResizeDirective = field(default_factory=ResizeDirective)
    rotation: Optional[int] = None  # degrees clockwise
    flip_horizontal: bool = False
    flip_vertical: bool = False

    def warnings(self) -> List[str]:
        """Non-fatal configuration problems. The affected step becomes a no-op."""
        problems = []
        if self.rotation is not None and self.rotation not in VALID_ROTATIONS:
            problems.append(
                f"Invalid rotation angle {self.rotation}; "
                f"expected one of {VALID_ROTATIONS}, rotation will be skipped"
            )
        return problems

    @property
    def is_identity(self) -> bool:
        return not (
            self.resize.enabled
            or self.rotation is not None
            or self.flip_horizontal
            or self.flip_vertical
        )


@dataclass
class PipelineConfig:
    """Configuration for a batch transform-and-label run."""
    input_dir: str
    output_dir: str
    transform: TransformConfig = field(default_factory=TransformConfig)
    prior_manifest: Optional[str] = None  # defaults to auto-discovery
    preserve_filenames: bool = True
    preserve_formats: bool = False
    output_format: str = "png"
    quality: int = 95  # JPEG quality
    num_workers: Optional[int] = None  # None -> os.cpu_count()
    extensions: FrozenSet[str] = frozenset({"png", "jpg", "jpeg"})

    def __post_init__(self):
        self.output_format = self.output_format.lower().lstrip(".")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unsupported output format {self.output_format!r}; "
                f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )
        if not 1 <= self.quality <= 100:
            raise ValueError(f"Quality must be between 1 and 100, got {self.quality}")
        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {self.num_workers}")

    @property
    def workers(self) -> int:
        return self.num_workers or os.cpu_count() or 1

    @property
    def dataset_name(self) -> str:
        """Name recorded in every manifest record: the output root's base name."""
        return Path(self.output_dir).resolve().name
