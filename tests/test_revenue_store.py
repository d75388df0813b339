from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from app.errors import ApiError
from app.services.revenue_store import BranchRevenueStore, get_revenue_store


class BranchRevenueStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "instance" / "branch_revenues.json"
        self.store = BranchRevenueStore(self.path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_reads_as_empty(self) -> None:
        self.assertEqual(self.store.all(), {})
        self.assertEqual(self.store.get("Kandy"), 0.0)

    def test_set_persists_and_coerces_revenue(self) -> None:
        self.store.set(" Kandy ", "12500")
        revenues = self.store.set("Galle", None)

        self.assertEqual(revenues, {"Kandy": 12500.0, "Galle": 0.0})
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {"Galle": 0.0, "Kandy": 12500.0})
        self.assertEqual(BranchRevenueStore(self.path).get("Kandy"), 12500.0)

    def test_blank_branch_name_is_rejected(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self.store.set("  ", 100)

        self.assertEqual(ctx.exception.code, "BRANCH_REQUIRED")
        self.assertFalse(self.path.exists())

    def test_corrupt_file_is_treated_as_empty(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")

        with self.assertLogs("app.revenue_store", level="WARNING"):
            self.assertEqual(self.store.all(), {})

    def test_write_failure_raises_service_error(self) -> None:
        with patch("app.services.revenue_store.os.replace", side_effect=OSError("read-only")):
            with self.assertLogs("app.revenue_store", level="ERROR"):
                with self.assertRaises(ApiError) as ctx:
                    self.store.set("Kandy", 100)

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.code, "REVENUE_STORE_UNAVAILABLE")

    def test_shared_store_follows_configured_path(self) -> None:
        other = Path(self._tmp.name) / "other.json"
        with patch("app.services.revenue_store.get_branch_revenue_store_path", return_value=self.path):
            first = get_revenue_store()
            self.assertIs(get_revenue_store(), first)
        with patch("app.services.revenue_store.get_branch_revenue_store_path", return_value=other):
            self.assertEqual(get_revenue_store().path, other)


if __name__ == "__main__":
    unittest.main()
