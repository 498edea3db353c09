"""Human and machine readable summaries of an update run."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

from software_updater.core.models import FamilyUpdateReport
from software_updater.core.utils import utc_now


def _exit_cell(report: FamilyUpdateReport) -> str:
    codes = [str(r.returncode) for r in report.results if r.returncode is not None]
    return ",".join(codes)


def table_rows(reports: Sequence[FamilyUpdateReport]) -> List[List[str]]:
    rows = []
    for r in reports:
        rows.append([
            r.display_name,
            r.status.value,
            ", ".join(r.programs),
            _exit_cell(r),
            r.error or "",
        ])
    return rows


def print_table(reports: Sequence[FamilyUpdateReport]) -> None:
    """Pretty-print one row per family."""
    headers = ["Family", "Status", "Program", "Exit", "Detail"]
    rows = table_rows(reports)

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            col_widths[i] = max(col_widths[i], len(str(cell)))

    def fmt_row(values):
        return " | ".join(str(v).ljust(col_widths[i]) for i, v in enumerate(values))

    print(fmt_row(headers))
    print("-+-".join("-" * w for w in col_widths))
    for row in rows:
        print(fmt_row(row))


def exit_code(reports: Sequence[FamilyUpdateReport]) -> int:
    """0 when every family succeeded (or was skipped/planned), 1 otherwise."""
    return 0 if all(r.ok for r in reports) else 1


def reports_to_json(reports: Sequence[FamilyUpdateReport]) -> Dict[str, Any]:
    return {
        "generated_at": utc_now(),
        "ok": exit_code(reports) == 0,
        "families": [r.model_dump(mode="json") for r in reports],
    }


def export_json(reports: Sequence[FamilyUpdateReport], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(reports_to_json(reports), indent=2), encoding="utf-8")
