from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, Generic, TypeVar

from sqlalchemy import Enum as SAEnum
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.db import Base
from app.errors import RecordNotFoundError, StoreError, validation_error

logger = logging.getLogger("app.entity_store")

ModelT = TypeVar("ModelT", bound=Base)

# Assigned by the store, never accepted from callers.
STORE_MANAGED_FIELDS = frozenset({"id", "created_date", "updated_date"})


def parse_sort_spec(sort: str | None) -> tuple[str, bool] | None:
    """Split ``"-created_date"`` into ``("created_date", True)``."""
    if sort is None:
        return None
    raw = sort.strip()
    if not raw:
        return None
    if raw.startswith("-"):
        return raw[1:], True
    return raw, False


class EntityStore(Generic[ModelT]):
    """Uniform list/filter/create/update/delete over one entity table.

    Every write commits on its own; a failed write rolls the session back so
    the caller sees the pre-attempt state.
    """

    def __init__(self, db: Session, model: type[ModelT]):
        self.db = db
        self.model = model
        self.entity = model.__name__
        self._columns = {column.key: column for column in sa_inspect(model).columns}

    def _column(self, field: str, *, code: str) -> Any:
        column = self._columns.get(field)
        if column is None:
            raise validation_error(code, f"Unknown field for {self.entity}: {field}")
        return column

    def _coerce_value(self, field: str, value: Any) -> Any:
        column = self._columns[field]
        column_type = column.type
        if value is None:
            return None
        if isinstance(column_type, SAEnum) and column_type.enum_class is not None:
            if isinstance(value, column_type.enum_class):
                return value
            try:
                return column_type.enum_class(value)
            except ValueError as exc:
                raise validation_error(
                    "INVALID_FIELD_VALUE",
                    f"Invalid value for {self.entity}.{field}: {value}",
                ) from exc
        python_type = None
        try:
            python_type = column_type.python_type
        except NotImplementedError:
            return value
        if python_type is date and isinstance(value, str):
            try:
                return date.fromisoformat(value[:10])
            except ValueError as exc:
                raise validation_error(
                    "INVALID_FIELD_VALUE",
                    f"Invalid date for {self.entity}.{field}: {value}",
                ) from exc
        if python_type is bool and isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes"}
        return value

    def _select(self, sort: str | None, limit: int | None):
        stmt = select(self.model)
        parsed = parse_sort_spec(sort)
        if parsed is not None:
            field, descending = parsed
            column = getattr(self.model, self._column(field, code="INVALID_SORT_FIELD").key)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            if limit < 0:
                raise validation_error("INVALID_LIMIT", "limit must be greater than or equal to zero")
            stmt = stmt.limit(limit)
        return stmt

    def _run_read(self, stmt) -> list[ModelT]:
        try:
            return list(self.db.scalars(stmt).all())
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("entity_store_read_failed", extra={"entity": self.entity})
            raise StoreError(f"Could not read {self.entity} records.") from exc

    def list(self, sort: str | None = None, limit: int | None = None) -> list[ModelT]:
        return self._run_read(self._select(sort, limit))

    def filter(
        self,
        predicates: Mapping[str, Any] | None,
        sort: str | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = self._select(sort, limit)
        for field, value in (predicates or {}).items():
            self._column(field, code="INVALID_FILTER_FIELD")
            column = getattr(self.model, field)
            coerced = self._coerce_value(field, value)
            stmt = stmt.where(column.is_(None) if coerced is None else column == coerced)
        return self._run_read(stmt)

    def get(self, record_id: str) -> ModelT:
        try:
            record = self.db.get(self.model, record_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("entity_store_read_failed", extra={"entity": self.entity, "record_id": record_id})
            raise StoreError(f"Could not read {self.entity} {record_id}.") from exc
        if record is None:
            raise RecordNotFoundError(self.entity, record_id)
        return record

    def _prepare_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        prepared: dict[str, Any] = {}
        for field, value in fields.items():
            if field in STORE_MANAGED_FIELDS:
                continue
            column = self._column(field, code="UNKNOWN_FIELD")
            if value is None and not column.nullable:
                raise validation_error("FIELD_REQUIRED", f"{self.entity}.{field} cannot be empty")
            prepared[field] = self._coerce_value(field, value)
        return prepared

    def _commit(self, *, operation: str, record_id: str | None) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning(
                "entity_store_write_conflict",
                extra={"entity": self.entity, "operation": operation, "record_id": record_id},
            )
            raise StoreError(
                f"{self.entity} {operation} conflicts with existing data.",
                code="STORE_CONFLICT",
                status_code=409,
            ) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception(
                "entity_store_write_failed",
                extra={"entity": self.entity, "operation": operation, "record_id": record_id},
            )
            raise StoreError(f"Could not {operation} {self.entity}.") from exc

    def create(self, fields: Mapping[str, Any]) -> ModelT:
        record = self.model(**self._prepare_fields(fields))
        self.db.add(record)
        self._commit(operation="create", record_id=None)
        self.db.refresh(record)
        return record

    def update(self, record_id: str, fields: Mapping[str, Any]) -> ModelT:
        prepared = self._prepare_fields(fields)
        record = self.get(record_id)
        for field, value in prepared.items():
            setattr(record, field, value)
        self._commit(operation="update", record_id=record_id)
        self.db.refresh(record)
        return record

    def delete(self, record_id: str) -> bool:
        record = self.get(record_id)
        self.db.delete(record)
        self._commit(operation="delete", record_id=record_id)
        return True

