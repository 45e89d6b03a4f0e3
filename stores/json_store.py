import json
import logging
from pathlib import Path
from typing import Any, Dict, Sequence

from stores.base import DEFAULT_MAX_PAGE_SIZE
from stores.memory_store import InMemoryStore


logger = logging.getLogger(__name__)


class JsonFileStore(InMemoryStore):
    """In-memory store persisted to a single JSON file after every write."""

    def __init__(self, path: str, max_page_size: int = DEFAULT_MAX_PAGE_SIZE):
        self.path = Path(path)
        tables = {}
        if self.path.exists():
            with open(self.path, 'r', encoding='utf-8') as f:
                tables = json.load(f)
            logger.info(f"Loaded store {self.path} ({', '.join(f'{t}: {len(r)}' for t, r in tables.items())})")
        super().__init__(tables, max_page_size=max_page_size)

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self.tables, f, ensure_ascii=False, indent=2, default=str)

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        result = super().insert(table, row)
        self._save()
        return result

    def update(self, table: str, match: Dict[str, Any], values: Dict[str, Any]) -> int:
        updated = super().update(table, match, values)
        if updated:
            self._save()
        return updated

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        result = super().upsert(table, row, on_conflict)
        self._save()
        return result

    def delete_where(self, table: str, match: Dict[str, Any]) -> int:
        deleted = super().delete_where(table, match)
        if deleted:
            self._save()
        return deleted
