"""
Tests for the geometric transform pipeline.
"""

import logging

import albumentations as A
import numpy as np
import pytest

from imageprep.config import ResizeDirective, TransformConfig
from imageprep.preprocessing.transforms import (
    FlipTransform,
    ResizeTransform,
    RotateTransform,
    build_transforms,
    transform,
)


def _image(width, height, channels=3):
    return np.random.randint(0, 255, (height, width, channels), dtype=np.uint8)


class TestResize:
    """Resize directive resolution."""

    def test_percentage(self):
        out = transform(_image(800, 600), TransformConfig(resize=ResizeDirective.percentage(50)))
        assert out.shape[:2] == (300, 400)

    def test_percentage_enlarges(self):
        out = transform(_image(10, 20), TransformConfig(resize=ResizeDirective.percentage(150)))
        assert out.shape[:2] == (30, 15)

    def test_percentage_floors_each_axis(self):
        out = transform(_image(101, 51), TransformConfig(resize=ResizeDirective.percentage(50)))
        assert out.shape[:2] == (25, 50)

    def test_exact_ignores_aspect_ratio(self):
        out = transform(_image(800, 600), TransformConfig(resize=ResizeDirective.exact(320, 240)))
        assert out.shape[:2] == (240, 320)
        out = transform(_image(100, 500), TransformConfig(resize=ResizeDirective.exact(320, 240)))
        assert out.shape[:2] == (240, 320)

    def test_fixed_width_keeps_aspect(self):
        out = transform(_image(800, 600), TransformConfig(resize=ResizeDirective.fixed_width(400)))
        assert out.shape[:2] == (300, 400)

    def test_fixed_height_keeps_aspect(self):
        out = transform(_image(800, 600), TransformConfig(resize=ResizeDirective.fixed_height(150)))
        assert out.shape[:2] == (150, 200)

    def test_grayscale(self):
        img = np.random.randint(0, 255, (60, 80), dtype=np.uint8)
        out = ResizeTransform(ResizeDirective.exact(40, 30)).apply(img)
        assert out.shape[:2] == (30, 40)


class TestRotateAndFlip:
    """Orientation transforms."""

    def test_flip_twice_is_identity(self):
        img = _image(50, 30)
        flip = FlipTransform(horizontal=True)
        assert np.array_equal(flip.apply(flip.apply(img)), img)

    def test_vertical_flip_twice_is_identity(self):
        img = _image(50, 30)
        flip = FlipTransform(vertical=True)
        assert np.array_equal(flip.apply(flip.apply(img)), img)

    def test_horizontal_flip_mirrors_columns(self):
        img = _image(50, 30)
        out = FlipTransform(horizontal=True).apply(img)
        assert np.array_equal(out, img[:, ::-1])

    def test_flip_albumentations_transform(self):
        both = FlipTransform(horizontal=True, vertical=True)
        assert isinstance(both.get_albumentations_transform(), A.Compose)
        assert isinstance(FlipTransform().get_albumentations_transform(), A.NoOp)

    def test_rotate_90_four_times_is_identity(self):
        img = _image(50, 30)
        config = TransformConfig(rotation=90)
        out = img
        for _ in range(4):
            out = transform(out, config)
        assert np.array_equal(out, img)

    def test_rotate_90_is_clockwise(self):
        img = _image(50, 30)
        out = RotateTransform(90).apply(img)
        assert out.shape[:2] == (50, 30)
        # Top-left pixel ends up top-right
        assert np.array_equal(out[0, -1], img[0, 0])

    def test_rotate_180_and_270(self):
        img = _image(50, 30)
        assert np.array_equal(RotateTransform(180).apply(img), img[::-1, ::-1])
        assert np.array_equal(
            RotateTransform(270).apply(RotateTransform(90).apply(img)), img
        )

    def test_invalid_rotation_is_noop_with_warning(self, caplog):
        img = _image(50, 30)
        with caplog.at_level(logging.WARNING):
            out = transform(img, TransformConfig(rotation=45))
        assert np.array_equal(out, img)
        assert "Invalid rotation angle 45" in caplog.text


class TestPipelineOrder:
    """resize -> rotate -> flip-horizontal -> flip-vertical."""

    def test_build_order(self):
        config = TransformConfig(
            resize=ResizeDirective.exact(10, 10),
            rotation=90,
            flip_horizontal=True,
            flip_vertical=True,
        )
        assert [t.name for t in build_transforms(config)] == ["resize", "rotate", "flip"]

    def test_identity_config_builds_nothing(self):
        assert build_transforms(TransformConfig()) == []

    def test_rotation_after_resize_changes_aspect(self):
        config = TransformConfig(resize=ResizeDirective.exact(320, 240), rotation=90)
        out = transform(_image(800, 600), config)
        assert out.shape[:2] == (320, 240)

    def test_flip_applies_to_rotated_frame(self):
        img = _image(50, 30)
        config = TransformConfig(rotation=90, flip_horizontal=True)
        expected = RotateTransform(90).apply(img)[:, ::-1]
        assert np.array_equal(transform(img, config), expected)

    def test_input_is_not_modified(self):
        img = _image(40, 20)
        before = img.copy()
        transform(img, TransformConfig(resize=ResizeDirective.percentage(50), rotation=180,
                                       flip_horizontal=True, flip_vertical=True))
        assert np.array_equal(img, before)

    @pytest.mark.parametrize("angle", [90, 180, 270])
    def test_result_is_contiguous(self, angle):
        out = transform(_image(40, 20), TransformConfig(rotation=angle, flip_horizontal=True))
        assert out.flags["C_CONTIGUOUS"]
