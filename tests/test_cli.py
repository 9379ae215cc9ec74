"""命令行入口测试。"""

from __future__ import annotations

import csv
from pathlib import Path

from typer.testing import CliRunner

from image_file_ops.cli.main import app

runner = CliRunner()


def test_compress_command_writes_output_and_report(tmp_path: Path, make_image) -> None:
    source = make_image("a.jpg")
    report = tmp_path / "report.csv"

    result = runner.invoke(app, ["compress", str(source), "-o", str(tmp_path / "out"), "-q", "50", "--report", str(report)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "a_压缩.jpg").exists()
    with report.open(encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert rows[0]["success"] == "1"
    assert rows[0]["output_path"].endswith("a_压缩.jpg")


def test_compress_command_exits_non_zero_on_failure(tmp_path: Path, make_image) -> None:
    good = make_image("a.jpg")
    bad = make_image("b.gif")

    result = runner.invoke(app, ["compress", str(good), str(bad), "-o", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "1/2" in result.output


def test_crop_command_rejects_zero_width(tmp_path: Path, make_image) -> None:
    source = make_image("a.jpg")

    result = runner.invoke(
        app,
        ["crop", str(source), "-o", str(tmp_path / "out"), "--width", "0", "--height", "10"],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "out").exists()


def test_watermark_command_rejects_long_text(tmp_path: Path, make_image) -> None:
    source = make_image("a.jpg")

    result = runner.invoke(app, ["watermark", str(source), "--text", "x" * 11, "-o", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert not (tmp_path / "out").exists()


def test_rename_and_delete_commands(tmp_path: Path) -> None:
    source = tmp_path / "old.jpg"
    source.write_bytes(b"x")

    renamed = runner.invoke(app, ["rename", str(source), "new"])
    assert renamed.exit_code == 0, renamed.output
    assert (tmp_path / "new.jpg").exists()

    clash = tmp_path / "other.jpg"
    clash.write_bytes(b"y")
    conflict = runner.invoke(app, ["rename", str(clash), "new"])
    assert conflict.exit_code == 1
    assert "already-exists" in conflict.output

    deleted = runner.invoke(app, ["delete", str(tmp_path / "new.jpg"), str(clash), "--yes"])
    assert deleted.exit_code == 0, deleted.output
    assert not (tmp_path / "new.jpg").exists() and not clash.exists()


def test_ls_command_lists_images(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / "pic.png").write_bytes(b"x")
    (tmp_path / "doc.txt").write_text("x")

    result = runner.invoke(app, ["ls", str(tmp_path)])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["[目录] sub", "[图片] pic.png"]


def test_convert_command_isolates_bad_paths(tmp_path: Path, make_image) -> None:
    good = make_image("good.png")
    missing = tmp_path / "input" / "missing.png"
    notes = tmp_path / "input" / "notes.txt"
    notes.write_text("not an image")
    report = tmp_path / "convert.csv"

    result = runner.invoke(
        app,
        ["convert", str(good), str(missing), str(notes), "--to", "jpg", "-o", str(tmp_path / "out"), "--report", str(report)],
    )

    assert result.exit_code == 1
    assert (tmp_path / "out" / "good_转换.jpg").exists()
    with report.open(encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert [row["success"] for row in rows] == ["1", "0", "0"]
    assert [row["error_kind"] for row in rows] == ["", "not-found", "not-an-image"]
