"""
Reporting on applied schema changes.

Reports are derived purely from the change log of a run.  They list exactly
what was applied, grouped by kind of change.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .changes import ChangeRecord, ChangeType


logger = logging.getLogger(__name__)


REPORT_TITLE = "Schema Sync Report"
RULE = "=" * 50


@dataclass
class SyncReport:
    """Change log grouped by change type."""

    groups: Dict[ChangeType, List[ChangeRecord]] = field(default_factory=dict)
    destination_id: Optional[str] = None

    @property
    def counts(self) -> Dict[ChangeType, int]:
        return {change_type: len(records) for change_type, records in self.groups.items()}

    @property
    def total_changes(self) -> int:
        return sum(self.counts.values())

    def count(self, change_type: ChangeType) -> int:
        return len(self.groups.get(change_type, []))

    def render(self) -> str:
        """Render the report as plain text."""
        lines = [REPORT_TITLE, RULE]

        for change_type, records in self.groups.items():
            lines.append("")
            lines.append(f"{change_type.value}: {len(records)}")
            lines.extend(f"  - {record.describe()}" for record in records)

        if not self.groups:
            lines.append("")
            lines.append("No changes applied")

        lines.append("")
        lines.append(RULE)
        lines.append(f"Total changes: {self.total_changes}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination_id": self.destination_id,
            "counts": {t.value: n for t, n in self.counts.items()},
            "total_changes": self.total_changes,
            "changes": [
                record.to_dict()
                for records in self.groups.values()
                for record in records
            ],
        }

    def to_markdown(self, title: Optional[str] = None) -> str:
        """Render the report as a Markdown document."""
        lines = [f"# {title or REPORT_TITLE}", ""]
        if self.destination_id:
            lines.append(f"- **Base:** {self.destination_id}")
        lines.append(f"- **Total changes:** {self.total_changes}")

        for change_type, records in self.groups.items():
            heading = change_type.value.replace("_", " ").title()
            lines.extend(["", f"## {heading} ({len(records)})", ""])
            lines.extend(f"- {record.describe()}" for record in records)

        lines.append("")
        return "\n".join(lines)

    def write(self, directory: Union[str, Path], slug: str) -> Tuple[Path, Path]:
        """
        Write JSON and Markdown copies of the report.

        Returns:
            Paths of the JSON and Markdown files
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        json_path = directory / f"{slug}-schema-sync-{int(time.time() * 1000)}.json"
        markdown_path = directory / f"{slug}-schema-sync.md"

        json_path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        markdown_path.write_text(self.to_markdown(), encoding="utf-8")

        logger.info(f"Sync report written to {json_path} and {markdown_path}")
        return json_path, markdown_path


def generate_report(
    changes: List[ChangeRecord],
    destination_id: Optional[str] = None,
) -> SyncReport:
    """Group a change log by change type, keeping first-seen order."""
    groups: Dict[ChangeType, List[ChangeRecord]] = {}
    for change in changes:
        groups.setdefault(change.change_type, []).append(change)
    return SyncReport(groups=groups, destination_id=destination_id)
