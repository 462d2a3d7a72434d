from __future__ import annotations

from pathlib import Path
from typing import List

from crudflow.models import RunReport
from crudflow.utils.io import write_text


def write_run_summary(path: Path, report: RunReport, root: Path) -> None:
    lines: List[str] = [f"# Run summary: story {report.story_id}", ""]
    lines.append(f"- completed steps: {', '.join(report.completed_steps) or 'none'}")
    if report.target is not None:
        if report.target.found:
            created = " (new)" if report.target.needs_creation else ""
            lines.append(f"- target controller: {report.target.endpoint}{created}")
        else:
            lines.append("- target controller: not resolved")
    if report.service_name:
        lines.append(f"- service: {report.service_name}")
    if report.story_detail:
        lines.extend(["", "## Story detail", "", report.story_detail.strip()])
    lines.extend(["", "## Source changes", ""])
    if report.changes:
        for change in report.changes:
            lines.append(f"- {change.action} {change.kind.value}: {_relative(change.path, root)}")
    else:
        lines.append("- none")
    write_text(path, "\n".join(lines) + "\n")


def _relative(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)
