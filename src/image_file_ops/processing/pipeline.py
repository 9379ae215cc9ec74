"""批处理执行器：并发执行逐文件任务，隔离单项失败并汇总结果。"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional, Sequence

from image_file_ops.core.exceptions import classify_error
from image_file_ops.core.models import BatchResult, FileTask, ItemResult
from image_file_ops.core.progress import ProgressUpdate

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]
ApplyFn = Callable[[FileTask], Optional[Path]]


def run_batch(
    tasks: Sequence[FileTask],
    apply: ApplyFn,
    *,
    max_workers: Optional[int] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """并发执行 ``apply``，结果顺序与 ``tasks`` 一致。

    ``apply`` 返回输出路径（删除等操作返回 None）；抛出的任何异常都会被记录为该项失败，
    不影响其他任务。
    """

    total = len(tasks)
    if total == 0:
        return BatchResult(success=True, results=[])

    results: list[Optional[ItemResult]] = [None] * total
    completed = 0
    failed = 0

    if max_workers == 1:
        for index, task in enumerate(tasks):
            outcome = _run_task(task, apply)
            results[index] = outcome
            completed += 1
            failed += 0 if outcome.success else 1
            _emit_progress(progress_callback, total, completed, failed, f"完成 {task.input_path.name}")
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_map = {executor.submit(_run_task, task, apply): index for index, task in enumerate(tasks)}
            for future in as_completed(future_map):
                index = future_map[future]
                outcome = future.result()
                results[index] = outcome
                completed += 1
                failed += 0 if outcome.success else 1
                _emit_progress(progress_callback, total, completed, failed, f"完成 {tasks[index].input_path.name}")

    ordered = [item for item in results if item is not None]
    batch = BatchResult(success=all(item.success for item in ordered), results=ordered)
    if not batch.success:
        LOGGER.error("%s 操作部分失败: %d/%d 个文件失败", tasks[0].operation.value, len(batch.failed), total)
        for item in batch.failed:
            LOGGER.error("  - %s: %s", item.input_path, item.error)
    return batch


def _run_task(task: FileTask, apply: ApplyFn) -> ItemResult:
    try:
        output_path = apply(task)
    except Exception as exc:  # noqa: BLE001
        kind = classify_error(exc)
        LOGGER.debug("任务执行失败 %s (%s)", task.input_path, kind.value, exc_info=exc)
        return ItemResult(
            input_path=task.input_path,
            success=False,
            error=str(exc),
            error_kind=kind,
        )
    return ItemResult(input_path=task.input_path, output_path=output_path, success=True)


def _emit_progress(
    callback: ProgressCallback,
    total: int,
    completed: int,
    failed: int,
    message: Optional[str] = None,
) -> None:
    if not callback:
        return
    try:
        callback(ProgressUpdate(total=total, completed=completed, failed=failed, message=message))
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("进度回调执行失败（忽略）: %s", exc, exc_info=exc)
