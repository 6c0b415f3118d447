from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .batch import RunSummary
from .results import ProcessResult


@dataclass(frozen=True)
class FileReport:
    src_path: str
    backup_path: Optional[str]
    src_bytes: int
    out_bytes: int
    saved_bytes: int
    saved_percent: float
    changed: bool
    skipped_reason: Optional[str]


@dataclass(frozen=True)
class BatchReport:
    created_utc: str
    summary: dict
    files: List[FileReport]


def build_report(results: List[ProcessResult], summary: RunSummary) -> BatchReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for r in results:
        files.append(
            FileReport(
                src_path=str(r.src_path),
                backup_path=str(r.backup_path) if r.backup_path else None,
                src_bytes=r.src_bytes,
                out_bytes=r.out_bytes,
                saved_bytes=r.saved_bytes,
                saved_percent=round(r.saved_percent, 2),
                changed=r.changed,
                skipped_reason=r.skipped_reason,
            )
        )

    summary_dict = {
        "total": summary.total,
        "completed": summary.completed,
        "failed": summary.failed,
        "total_src_bytes": summary.total_src_bytes,
        "total_out_bytes": summary.total_out_bytes,
        "saved_bytes": summary.saved_bytes,
        "saved_percent": round(summary.saved_percent, 2),
        "error": summary.error,
    }

    return BatchReport(created_utc=created_utc, summary=summary_dict, files=files)


def save_report_json(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)


CSV_FIELDS = [
    "src_path",
    "backup_path",
    "src_bytes",
    "out_bytes",
    "saved_bytes",
    "saved_percent",
    "changed",
    "skipped_reason",
]


def save_report_csv(report: BatchReport, path: Path) -> None:
    """One row per file; the summary only goes into the JSON report."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for file_report in report.files:
            writer.writerow(asdict(file_report))
