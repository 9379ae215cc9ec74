"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from image_file_ops.core.config import EngineConfig, WatermarkDefaults
from image_file_ops.core.deleter import delete_many_detailed
from image_file_ops.core.exceptions import ImageFileOpsError, NotAnImageError
from image_file_ops.core.models import (
    BatchResult,
    ConvertRequest,
    CropRect,
    FileItem,
    FileItemType,
    ItemResult,
    WatermarkOptions,
)
from image_file_ops.core.progress import ProgressUpdate
from image_file_ops.core.report import write_csv_report
from image_file_ops.core.scanner import classify_path, get_file_info, list_directory
from image_file_ops.processing.operations import add_watermarks, compress_files, convert_files, crop_image
from image_file_ops.processing.rename import rename_file
from image_file_ops.utils.logging import setup_logging

app = typer.Typer(help="图片文件批量处理工具：压缩、格式转换、裁剪、加水印、重命名与删除。")
console = Console()

_state = {"config": EngineConfig()}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="并发线程数量，默认由系统决定"),
    font: Optional[Path] = typer.Option(None, "--font", help="水印使用的字体文件"),
) -> None:
    """全局选项。"""

    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    _state["config"] = EngineConfig(
        max_workers=workers,
        watermark=WatermarkDefaults(font_path=font.resolve() if font else None),
    )


def _config() -> EngineConfig:
    return _state["config"]


def _build_progress_callback(progress: Progress) -> Callable[[ProgressUpdate], None]:
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理文件", total=update.total)
        progress.update(task_id, completed=update.completed)

    return callback


def _make_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )


def _print_results(results: List[ItemResult]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("输入")
    table.add_column("输出")
    table.add_column("结果")
    for item in results:
        status = "[green]成功[/green]" if item.success else f"[red]失败[/red] {item.error or ''}"
        table.add_row(str(item.input_path), str(item.output_path or ""), status)
    console.print(table)


def _finish_batch(result: BatchResult, report: Optional[Path]) -> None:
    _print_results(result.results)
    if report is not None:
        write_csv_report(result.results, report)
        console.print(f"报告文件：{report}")
    console.print(f"处理完成：成功 {result.summary()}")
    if not result.success:
        raise typer.Exit(code=1)


def _fail(exc: ImageFileOpsError) -> None:
    console.print(f"[red]错误[/red] ({exc.kind.value}): {exc}")
    raise typer.Exit(code=1)


def _as_item(path: Path) -> Union[FileItem, Path]:
    """分类失败的路径仍交给批处理，由其逐项报告错误。"""

    try:
        return classify_path(path)
    except NotAnImageError:
        return FileItem(name=path.name, path=path, type=FileItemType.OTHER)
    except ImageFileOpsError:
        return path


@app.command("ls")
def ls_cli(directory: Optional[Path] = typer.Argument(None, help="目录，默认为桌面或主目录")) -> None:
    """列出目录中的文件夹与图片。"""

    for item in list_directory(directory):
        marker = "目录" if item.type == FileItemType.FOLDER else "图片"
        typer.echo(f"[{marker}] {item.name}")


@app.command("info")
def info_cli(path: Path = typer.Argument(..., help="文件路径")) -> None:
    """查看文件详情。"""

    try:
        details = get_file_info(path)
    except ImageFileOpsError as exc:
        _fail(exc)
        return

    typer.echo(f"文件路径：{details.path}")
    typer.echo(f"文件大小：{details.size / 1024 / 1024:.2f}MB")
    typer.echo(f"文件创建时间：{details.created_at:%Y-%m-%d %H:%M:%S}")
    typer.echo(f"文件修改时间：{details.modified_at:%Y-%m-%d %H:%M:%S}")
    if details.width is not None:
        typer.echo(f"文件尺寸：{details.width} x {details.height}")


@app.command("compress")
def compress_cli(
    files: List[Path] = typer.Argument(..., help="需要压缩的图片文件"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    quality: Optional[int] = typer.Option(None, "--quality", "-q", help="压缩质量 1-100，默认 80"),
    report: Optional[Path] = typer.Option(None, "--report", help="CSV 报告路径"),
) -> None:
    """批量压缩图片（保持原格式）。"""

    try:
        with _make_progress() as progress:
            result = compress_files(
                files,
                output,
                quality,
                config=_config(),
                progress_callback=_build_progress_callback(progress),
            )
    except ImageFileOpsError as exc:
        _fail(exc)
        return
    _finish_batch(result, report)


@app.command("convert")
def convert_cli(
    files: List[Path] = typer.Argument(..., help="需要转换的图片文件"),
    to: str = typer.Option(..., "--to", "-t", help="目标格式：jpg / png / bmp"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    report: Optional[Path] = typer.Option(None, "--report", help="CSV 报告路径"),
) -> None:
    """批量格式转换。"""

    try:
        requests = [ConvertRequest(file=_as_item(path), target_format=to) for path in files]
        with _make_progress() as progress:
            result = convert_files(
                requests,
                output,
                config=_config(),
                progress_callback=_build_progress_callback(progress),
            )
    except ImageFileOpsError as exc:
        _fail(exc)
        return
    _finish_batch(result, report)


@app.command("crop")
def crop_cli(
    file: Path = typer.Argument(..., help="需要裁剪的图片"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    left: int = typer.Option(0, "--left", help="左上角 x"),
    top: int = typer.Option(0, "--top", help="左上角 y"),
    width: int = typer.Option(..., "--width", help="裁剪宽度"),
    height: int = typer.Option(..., "--height", help="裁剪高度"),
) -> None:
    """裁剪单张图片。"""

    try:
        result = crop_image(file, output, CropRect(left=left, top=top, width=width, height=height), config=_config())
    except ImageFileOpsError as exc:
        _fail(exc)
        return
    _finish_batch(BatchResult(success=result.success, results=[result]), None)


@app.command("watermark")
def watermark_cli(
    file: Path = typer.Argument(..., help="需要加水印的图片"),
    text: str = typer.Option(..., "--text", help="水印文本，最多 10 个字符"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    font_size: Optional[int] = typer.Option(None, "--font-size", help="字号，默认按图片短边计算"),
    color: Optional[str] = typer.Option(None, "--color", help="颜色，默认 rgba(255,255,255,0.75)"),
    position: Optional[str] = typer.Option(None, "--position", help="top-left/top-right/bottom-left/bottom-right/center"),
    padding: Optional[int] = typer.Option(None, "--padding", help="距边缘的距离，默认按图片短边计算"),
    angle: Optional[float] = typer.Option(None, "--angle", help="旋转角度（度）"),
    x_ratio: Optional[float] = typer.Option(None, "--x", help="水平位置比例 0~1（需同时指定 --y）"),
    y_ratio: Optional[float] = typer.Option(None, "--y", help="垂直位置比例 0~1（需同时指定 --x）"),
) -> None:
    """为单张图片添加文字水印。"""

    options = WatermarkOptions(
        font_size=font_size,
        color=color,
        position=position,
        padding=padding,
        angle=angle,
        x_ratio=x_ratio,
        y_ratio=y_ratio,
    )
    try:
        result = add_watermarks([_as_item(file)], text, output, options, config=_config())
    except ImageFileOpsError as exc:
        _fail(exc)
        return
    _finish_batch(result, None)


@app.command("rename")
def rename_cli(
    path: Path = typer.Argument(..., help="文件或文件夹路径"),
    new_name: str = typer.Argument(..., help="新名称（文件可省略扩展名）"),
) -> None:
    """在原目录内重命名。"""

    try:
        rename_file(path, new_name)
    except ImageFileOpsError as exc:
        _fail(exc)
        return
    typer.echo("重命名成功")


@app.command("delete")
def delete_cli(
    paths: List[Path] = typer.Argument(..., help="要删除的文件或文件夹"),
    yes: bool = typer.Option(False, "--yes", "-y", help="跳过确认"),
) -> None:
    """批量删除文件或文件夹（文件夹递归删除）。"""

    if not yes:
        typer.confirm(f"确认删除 {len(paths)} 项？", abort=True)
    result = delete_many_detailed(paths, max_workers=_config().max_workers)
    _finish_batch(result, None)


if __name__ == "__main__":
    app()
