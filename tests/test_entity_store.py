from __future__ import annotations

import unittest
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base
from app.errors import ApiError, RecordNotFoundError, StoreError
from app.models import Branch, BranchStatus
from app.services.entity_store import EntityStore, parse_sort_spec


def _sqlite_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


class SortSpecTests(unittest.TestCase):
    def test_prefix_means_descending(self) -> None:
        self.assertEqual(parse_sort_spec("-created_date"), ("created_date", True))
        self.assertEqual(parse_sort_spec("name"), ("name", False))
        self.assertIsNone(parse_sort_spec(None))
        self.assertIsNone(parse_sort_spec("  "))


class EntityStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _sqlite_session()
        self.store = EntityStore(self.db, Branch)

    def tearDown(self) -> None:
        self.db.close()

    def test_create_assigns_identity_and_timestamps(self) -> None:
        branch = self.store.create({"branch_name": "Colombo 03", "status": "Minor Issue", "id": "ignored"})

        self.assertNotEqual(branch.id, "ignored")
        self.assertEqual(len(branch.id), 32)
        self.assertIsNotNone(branch.created_date)
        self.assertEqual(branch.status, BranchStatus.MINOR_ISSUE)

    def test_list_sort_and_limit(self) -> None:
        for name in ("Kandy", "Colombo", "Galle"):
            self.store.create({"branch_name": name})

        self.assertEqual([b.branch_name for b in self.store.list("branch_name")], ["Colombo", "Galle", "Kandy"])
        self.assertEqual([b.branch_name for b in self.store.list("-branch_name", 2)], ["Kandy", "Galle"])

    def test_filter_is_exact_equality(self) -> None:
        self.store.create({"branch_name": "Kandy", "status": BranchStatus.CRITICAL})
        self.store.create({"branch_name": "Kandy North", "status": BranchStatus.ACTIVE})

        critical = self.store.filter({"status": "Critical"})
        by_name = self.store.filter({"branch_name": "Kandy"})

        self.assertEqual([b.branch_name for b in critical], ["Kandy"])
        self.assertEqual(len(by_name), 1)

    def test_unknown_sort_and_filter_fields_are_rejected(self) -> None:
        with self.assertRaises(ApiError) as sort_ctx:
            self.store.list("-nope")
        with self.assertRaises(ApiError) as filter_ctx:
            self.store.filter({"nope": 1})

        self.assertEqual(sort_ctx.exception.code, "INVALID_SORT_FIELD")
        self.assertEqual(filter_ctx.exception.code, "INVALID_FILTER_FIELD")

    def test_invalid_enum_value_is_rejected_before_write(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            self.store.create({"branch_name": "Kandy", "status": "Closed forever"})

        self.assertEqual(ctx.exception.code, "INVALID_FIELD_VALUE")
        self.assertEqual(self.store.list(), [])

    def test_update_and_delete(self) -> None:
        branch = self.store.create({"branch_name": "Kandy"})

        updated = self.store.update(branch.id, {"manager": "Sunil", "status": "Renovation"})
        self.assertEqual(updated.manager, "Sunil")
        self.assertEqual(updated.status, BranchStatus.RENOVATION)

        self.assertTrue(self.store.delete(branch.id))
        with self.assertRaises(RecordNotFoundError) as ctx:
            self.store.get(branch.id)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_required_field_cannot_be_cleared(self) -> None:
        branch = self.store.create({"branch_name": "Kandy", "manager": "Sunil"})

        with self.assertRaises(ApiError) as ctx:
            self.store.update(branch.id, {"branch_name": None})
        self.assertEqual(ctx.exception.code, "FIELD_REQUIRED")

        cleared = self.store.update(branch.id, {"manager": None})
        self.assertIsNone(cleared.manager)

    def test_commit_failure_rolls_back_and_raises_store_error(self) -> None:
        branch = self.store.create({"branch_name": "Kandy"})

        with patch.object(self.db, "commit", side_effect=OperationalError("UPDATE", {}, Exception("down"))):
            with self.assertLogs("app.entity_store", level="ERROR"):
                with self.assertRaises(StoreError) as ctx:
                    self.store.update(branch.id, {"manager": "Sunil"})

        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.code, "STORE_UNAVAILABLE")
        self.assertIsNone(self.store.get(branch.id).manager)


if __name__ == "__main__":
    unittest.main()
