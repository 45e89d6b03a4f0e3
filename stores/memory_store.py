import copy
import uuid
from typing import Any, Dict, List, Optional, Sequence

from core.errors import ConstraintViolation, StoreError
from models.transaction import CANONICAL_STATUSES
from stores.base import (
    CARD_LINKS,
    CONTACTS,
    DEFAULT_MAX_PAGE_SIZE,
    IMPORT_JOBS,
    LEDGER,
    ORDERS,
    OVERRIDES,
    PRODUCT_MAPPINGS,
    STAGING,
    PersistenceService,
)


UNIQUE_KEYS = {
    CONTACTS: ("id",),
    CARD_LINKS: ("card_last4", "card_holder"),
    STAGING: ("bepaid_uid",),
    LEDGER: ("provider", "provider_payment_id"),
    OVERRIDES: ("provider", "uid"),
    IMPORT_JOBS: ("id",),
    PRODUCT_MAPPINGS: ("bepaid_plan_title",),
    ORDERS: ("id",),
}

# Columns restricted to the canonical status vocabulary
STATUS_CHECKS = {
    LEDGER: "status",
    OVERRIDES: "status_override",
}


class InMemoryStore(PersistenceService):
    """Dict-backed persistence service enforcing unique keys and the status check constraint."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 max_page_size: int = DEFAULT_MAX_PAGE_SIZE):
        self.max_page_size = max_page_size
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.write_counts: Dict[str, int] = {}
        for table, rows in (tables or {}).items():
            for row in rows:
                InMemoryStore.insert(self, table, row)
        self.write_counts.clear()

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _record_write(self, table: str):
        self.write_counts[table] = self.write_counts.get(table, 0) + 1

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    def _check(self, table: str, row: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None):
        column = STATUS_CHECKS.get(table)
        if column and row.get(column) not in CANONICAL_STATUSES:
            raise ConstraintViolation(f"{table}.{column} must be one of {CANONICAL_STATUSES}, got {row.get(column)!r}")

        key_columns = UNIQUE_KEYS.get(table)
        if not key_columns:
            return
        key = tuple(row.get(c) for c in key_columns)
        for existing in self._rows(table):
            if existing is ignore:
                continue
            if tuple(existing.get(c) for c in key_columns) == key:
                raise ConstraintViolation(f"Duplicate key {dict(zip(key_columns, key))} in {table}")

    def select(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return [copy.deepcopy(row) for row in self._rows(table) if self._matches(row, filters)]

    def select_in(self, table: str, column: str, values: Sequence[Any],
                  filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if len(values) > self.max_page_size:
            raise StoreError(f"select_in on {table} with {len(values)} values exceeds page size {self.max_page_size}")
        wanted = set(values)
        return [
            copy.deepcopy(row) for row in self._rows(table)
            if row.get(column) in wanted and self._matches(row, filters)
        ]

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        new_row = copy.deepcopy(row)
        if not new_row.get("id"):
            new_row["id"] = str(uuid.uuid4())
        self._check(table, new_row)
        self._rows(table).append(new_row)
        self._record_write(table)
        return copy.deepcopy(new_row)

    def update(self, table: str, match: Dict[str, Any], values: Dict[str, Any]) -> int:
        updated = 0
        for row in self._rows(table):
            if not self._matches(row, match):
                continue
            candidate = {**row, **copy.deepcopy(values)}
            self._check(table, candidate, ignore=row)
            row.update(candidate)
            updated += 1
        if updated:
            self._record_write(table)
        return updated

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        key = {column: row.get(column) for column in on_conflict}
        existing = [r for r in self._rows(table) if self._matches(r, key)]
        if not existing:
            return self.insert(table, row)

        target = existing[0]
        candidate = {**target, **copy.deepcopy(row)}
        candidate["id"] = target.get("id")
        self._check(table, candidate, ignore=target)
        target.update(candidate)
        self._record_write(table)
        return copy.deepcopy(target)

    def delete_where(self, table: str, match: Dict[str, Any]) -> int:
        if not match:
            raise StoreError(f"Refusing to delete from {table} without a filter")
        rows = self._rows(table)
        kept = [row for row in rows if not self._matches(row, match)]
        deleted = len(rows) - len(kept)
        self.tables[table] = kept
        if deleted:
            self._record_write(table)
        return deleted

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        return sum(1 for row in self._rows(table) if self._matches(row, filters))
