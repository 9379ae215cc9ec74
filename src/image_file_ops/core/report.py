"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from image_file_ops.core.models import ItemResult

HEADER = ["input_path", "output_path", "success", "error_kind", "error"]


def write_csv_report(results: Iterable[ItemResult], report_path: Path) -> Path:
    """将逐项结果写入 CSV 报告。"""

    report_path.parent.mkdir(parents=True, exist_ok=True)
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in results:
            writer.writerow(
                [
                    str(record.input_path),
                    str(record.output_path) if record.output_path else "",
                    "1" if record.success else "0",
                    record.error_kind.value if record.error_kind else "",
                    record.error or "",
                ]
            )
    return report_path
