from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


class WorkLogParseError(ValueError):
    pass


def coerce_number(value: Any) -> float:
    """Numeric form of a user-entered value; blanks and garbage become 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return 0.0
        try:
            number = float(raw)
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


@dataclass(frozen=True, slots=True)
class WorkLogEntry:
    branch: str
    days: float
    rate: float
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "days": self.days,
            "rate": self.rate,
            "total": self.total,
        }


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def entry_from_row(row: Any) -> WorkLogEntry:
    branch = _field(row, "branch")
    days = coerce_number(_field(row, "days"))
    rate = coerce_number(_field(row, "rate"))
    return WorkLogEntry(
        branch=str(branch).strip() if branch is not None else "",
        days=days,
        rate=rate,
        total=days * rate,
    )


def is_billable(entry: WorkLogEntry) -> bool:
    return bool(entry.branch) and entry.days > 0


def serialize_work_log(entries: Iterable[WorkLogEntry]) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in entries]


def parse_work_log(raw: Any) -> list[WorkLogEntry]:
    """Decode a stored work_log (JSON list, or a JSON string from older rows).

    Stored totals are kept as written; they are not recomputed here.
    """
    if raw is None:
        return []
    payload = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise WorkLogParseError("work_log is not valid JSON") from exc
    if not isinstance(payload, list):
        raise WorkLogParseError("work_log must be a list")

    entries: list[WorkLogEntry] = []
    for item in payload:
        if not isinstance(item, Mapping):
            raise WorkLogParseError("work_log rows must be objects")
        days = coerce_number(item.get("days"))
        rate = coerce_number(item.get("rate"))
        total = item.get("total")
        branch = item.get("branch")
        entries.append(
            WorkLogEntry(
                branch=str(branch) if branch is not None else "",
                days=days,
                rate=rate,
                total=coerce_number(total) if total is not None else days * rate,
            )
        )
    return entries
