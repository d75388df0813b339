from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from app.errors import ApiError, validation_error
from app.services.work_log import coerce_number
from app.settings import get_branch_revenue_store_path

logger = logging.getLogger("app.revenue_store")


class BranchRevenueStore:
    """Operator-entered revenue per branch name, kept in a JSON file.

    Lives outside the entity store and is only read by the financial views.
    An unreadable file is treated as empty.
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> dict[str, float]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("branch_revenue_store_unreadable", extra={"path": str(self.path)}, exc_info=True)
            return {}
        if not isinstance(payload, dict):
            logger.warning("branch_revenue_store_unreadable", extra={"path": str(self.path)})
            return {}
        return {str(name): coerce_number(value) for name, value in payload.items()}

    def _write(self, revenues: Mapping[str, float]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(dict(revenues), ensure_ascii=False, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.exception("branch_revenue_store_write_failed", extra={"path": str(self.path)})
            raise ApiError(
                status_code=503,
                code="REVENUE_STORE_UNAVAILABLE",
                message="Branch revenues could not be saved.",
            ) from exc

    def all(self) -> dict[str, float]:
        with self._lock:
            return self._read()

    def get(self, branch_name: str) -> float:
        return self.all().get(branch_name, 0.0)

    def set(self, branch_name: str, revenue: Any) -> dict[str, float]:
        name = (branch_name or "").strip()
        if not name:
            raise validation_error("BRANCH_REQUIRED", "Branch name is required.")
        with self._lock:
            revenues = self._read()
            revenues[name] = coerce_number(revenue)
            self._write(revenues)
        logger.info("branch_revenue_saved", extra={"branch": name, "revenue": revenues[name]})
        return revenues


_store: BranchRevenueStore | None = None
_store_lock = threading.Lock()


def get_revenue_store() -> BranchRevenueStore:
    global _store
    with _store_lock:
        path = get_branch_revenue_store_path()
        if _store is None or _store.path != path:
            _store = BranchRevenueStore(path)
        return _store
