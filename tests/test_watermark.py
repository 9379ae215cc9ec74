"""水印布局、文本校验与颜色解析测试。"""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from image_file_ops.core.config import WatermarkDefaults
from image_file_ops.core.exceptions import ErrorKind, InvalidParameterError
from image_file_ops.core.models import WatermarkOptions
from image_file_ops.processing.operations import add_watermarks
from image_file_ops.processing.watermark import build_overlay, escape_markup, validate_text
from image_file_ops.utils.colors import parse_color

DEFAULTS = WatermarkDefaults()


def test_text_longer_than_limit_fails_and_writes_nothing(tmp_path: Path, make_image, recording_codec) -> None:
    source = make_image("a.jpg")
    out_dir = tmp_path / "out"

    result = add_watermarks([source], "一二三四五六七八九十一", out_dir, codec=recording_codec)

    assert result.success is False
    assert [item.error_kind for item in result.results] == [ErrorKind.INVALID_PARAMETER]
    assert recording_codec.calls == []
    assert not out_dir.exists()


def test_more_than_one_file_is_rejected_for_every_item(tmp_path: Path, make_image, recording_codec) -> None:
    first = make_image("a.jpg")
    second = make_image("b.jpg")

    result = add_watermarks([first, second], "ok", tmp_path / "out", codec=recording_codec)

    assert result.success is False
    assert [item.error_kind for item in result.results] == [ErrorKind.INVALID_PARAMETER] * 2
    assert [item.input_path for item in result.results] == [first, second]
    assert recording_codec.calls == []


@pytest.mark.parametrize("text", [None, "", "   "])
def test_blank_text_is_rejected(text) -> None:
    with pytest.raises(InvalidParameterError):
        validate_text(text, DEFAULTS)


def test_ten_characters_are_accepted_and_trimmed(tmp_path: Path, make_image, recording_codec) -> None:
    source = make_image("a.jpg")

    result = add_watermarks([source], "  一二三四五六七八九十  ", tmp_path / "out", codec=recording_codec)

    assert result.success is True
    assert result.results[0].output_path.name == "a_水印.jpg"
    (operation, _, _, overlay), = recording_codec.calls
    assert operation == "composite"
    assert overlay.text == "一二三四五六七八九十"


def test_default_layout_scales_with_short_side() -> None:
    overlay = build_overlay(1000, 500, "demo", WatermarkOptions(), DEFAULTS)

    assert overlay.font_size == 25
    assert (overlay.x, overlay.y) == (985, 485)
    assert (overlay.text_anchor, overlay.baseline) == ("end", "alphabetic")
    assert overlay.pil_anchor == "rs"
    assert overlay.color == DEFAULTS.color
    assert overlay.fill == (255, 255, 255, 191)


def test_small_images_use_minimum_font_and_padding() -> None:
    overlay = build_overlay(100, 100, "demo", WatermarkOptions(position="top-left"), DEFAULTS)

    assert overlay.font_size == 16
    assert (overlay.x, overlay.y) == (10, 26)
    assert overlay.pil_anchor == "ls"


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        ("top-right", (185, 31, "rs")),
        ("bottom-left", (15, 85, "ls")),
        ("center", (100, 50, "mm")),
    ],
)
def test_named_positions(position: str, expected: tuple[int, int, str]) -> None:
    overlay = build_overlay(200, 100, "demo", WatermarkOptions(position=position, padding=15, font_size=16), DEFAULTS)

    assert (overlay.x, overlay.y, overlay.pil_anchor) == expected


def test_ratio_position_is_clamped_and_centered() -> None:
    overlay = build_overlay(200, 100, "demo", WatermarkOptions(x_ratio=1.5, y_ratio=-0.2), DEFAULTS)

    assert (overlay.x, overlay.y) == (200, 0)
    assert overlay.pil_anchor == "mm"


def test_ratio_requires_both_coordinates() -> None:
    overlay = build_overlay(200, 100, "demo", WatermarkOptions(x_ratio=0.5), DEFAULTS)

    assert overlay.pil_anchor == "rs"


@pytest.mark.parametrize(("angle", "expected"), [(12.5, 13), (-12.5, -12), (45.2, 45), (float("nan"), 0), (None, 0)])
def test_angle_is_rounded(angle, expected: int) -> None:
    overlay = build_overlay(200, 100, "demo", WatermarkOptions(angle=angle), DEFAULTS)

    assert overlay.angle == expected
    assert f"rotate({expected} {overlay.x} {overlay.y})" in overlay.markup


def test_markup_escapes_text() -> None:
    overlay = build_overlay(200, 100, '<a & "b">', WatermarkOptions(), DEFAULTS)

    assert "&lt;a &amp; &quot;b&quot;&gt;" in overlay.markup
    assert overlay.text == '<a & "b">'
    assert escape_markup("it's") == "it&apos;s"


def test_unknown_position_is_rejected() -> None:
    with pytest.raises(InvalidParameterError):
        build_overlay(200, 100, "demo", WatermarkOptions(position="middle"), DEFAULTS)


def test_real_composite_changes_pixels(tmp_path: Path, make_image) -> None:
    source = make_image("dark.png", size=(200, 100), color="black")

    result = add_watermarks(
        [source],
        "ABC",
        tmp_path / "out",
        WatermarkOptions(color="#ffffff", position="center", font_size=40),
    )

    assert result.success is True, result.results[0].error
    with Image.open(result.results[0].output_path) as img:
        assert img.size == (200, 100)
        assert img.convert("L").getextrema()[1] > 0
    with Image.open(source) as original:
        assert original.convert("L").getextrema() == (0, 0)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("#fff", (255, 255, 255, 255)),
        ("#00000080", (0, 0, 0, 128)),
        ("rgb(1, 2, 3)", (1, 2, 3, 255)),
        ("rgba(255,255,255,0.75)", (255, 255, 255, 191)),
        ("rgba(0,0,0,50%)", (0, 0, 0, 128)),
        ("red", (255, 0, 0, 255)),
    ],
)
def test_parse_color(value: str, expected: tuple[int, int, int, int]) -> None:
    assert parse_color(value) == expected


@pytest.mark.parametrize("value", ["", "not-a-color", "rgb(300,0,0)"])
def test_parse_color_rejects_invalid(value: str) -> None:
    with pytest.raises(InvalidParameterError):
        parse_color(value)
