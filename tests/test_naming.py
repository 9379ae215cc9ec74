"""输出文件命名规则测试。"""

from __future__ import annotations

from pathlib import Path

import pytest

from image_file_ops.core.exceptions import InvalidParameterError
from image_file_ops.core.naming import next_output_path, rename_target
from image_file_ops.core.output_manager import OutputManager

OUT = Path("/out")


def _never_exists(_: Path) -> bool:
    return False


def test_first_use_appends_tag_without_number() -> None:
    result = next_output_path(OUT, Path("/d/photo.jpg"), "压缩", exists=_never_exists)
    assert result == OUT / "photo_压缩.jpg"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("photo_压缩.jpg", "photo_压缩_1.jpg"),
        ("photo_压缩_3.jpg", "photo_压缩_4.jpg"),
        ("photo_转换.jpg", "photo_转换_压缩.jpg"),
    ],
)
def test_already_tagged_input_increments_number(name: str, expected: str) -> None:
    result = next_output_path(OUT, Path("/d") / name, "压缩", exists=_never_exists)
    assert result == OUT / expected


def test_taken_candidates_are_skipped() -> None:
    taken = {OUT / "photo_压缩.jpg", OUT / "photo_压缩_1.jpg"}
    result = next_output_path(OUT, Path("/d/photo.jpg"), "压缩", exists=taken.__contains__)
    assert result == OUT / "photo_压缩_2.jpg"


@pytest.mark.parametrize("target_ext", [".jpg", "jpg"])
def test_target_extension_replaces_original(target_ext: str) -> None:
    result = next_output_path(OUT, Path("/d/a.png"), "转换", target_ext, exists=_never_exists)
    assert result == OUT / "a_转换.jpg"


def test_directory_with_candidate_name_counts_as_collision(tmp_path: Path) -> None:
    (tmp_path / "a_压缩.jpg").mkdir()

    result = next_output_path(tmp_path, Path("/d/a.jpg"), "压缩")

    assert result == tmp_path / "a_压缩_1.jpg"


def test_sequential_calls_never_collide(tmp_path: Path) -> None:
    seen: set[Path] = set()
    for _ in range(5):
        candidate = next_output_path(tmp_path, Path("/d/a.jpg"), "水印")
        assert not candidate.exists()
        assert candidate not in seen
        seen.add(candidate)
        candidate.write_bytes(b"x")

    assert {p.name for p in seen} == {"a_水印.jpg", "a_水印_1.jpg", "a_水印_2.jpg", "a_水印_3.jpg", "a_水印_4.jpg"}


def test_output_manager_reserves_names_within_batch(tmp_path: Path) -> None:
    manager = OutputManager(tmp_path / "out")

    first = manager.decide_destination(Path("/a/x.jpg"), "压缩")
    second = manager.decide_destination(Path("/b/x.jpg"), "压缩")

    assert first.name == "x_压缩.jpg"
    assert second.name == "x_压缩_1.jpg"
    assert not first.exists() and not second.exists()


def test_rename_target_keeps_original_extension_for_files() -> None:
    assert rename_target(Path("/d/old.jpg"), "new", is_file=True) == Path("/d/new.jpg")
    assert rename_target(Path("/d/old.jpg"), " new.png ", is_file=True) == Path("/d/new.png")


def test_rename_target_never_appends_extension_to_folders() -> None:
    assert rename_target(Path("/d/album.2024"), "photos", is_file=False) == Path("/d/photos")


@pytest.mark.parametrize("bad_name", ["", "   ", "a/b", "a\\b", ".", "..", "a\x00b"])
def test_rename_target_rejects_illegal_names(bad_name: str) -> None:
    with pytest.raises(InvalidParameterError):
        rename_target(Path("/d/old.jpg"), bad_name, is_file=True)
