from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


# Table names
CONTACTS = "contacts"
CARD_LINKS = "card_profile_links"
STAGING = "payment_reconcile_queue"
LEDGER = "payments"
OVERRIDES = "payment_status_overrides"
IMPORT_JOBS = "import_jobs"
PRODUCT_MAPPINGS = "bepaid_product_mappings"
ORDERS = "orders"

DEFAULT_MAX_PAGE_SIZE = 500


class PersistenceService(ABC):
    """
    Record CRUD over named tables.

    Rows are plain dicts. Batched lookups are bounded by max_page_size and
    writes carry explicit uniqueness targets.
    """

    max_page_size: int = DEFAULT_MAX_PAGE_SIZE

    @abstractmethod
    def select(self, table: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Rows whose columns equal every filter value."""
        pass

    @abstractmethod
    def select_in(self, table: str, column: str, values: Sequence[Any],
                  filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Rows whose column is in values. Raises StoreError above max_page_size values."""
        pass

    @abstractmethod
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it with its assigned id."""
        pass

    @abstractmethod
    def update(self, table: str, match: Dict[str, Any], values: Dict[str, Any]) -> int:
        """Update matching rows and return how many changed."""
        pass

    @abstractmethod
    def upsert(self, table: str, row: Dict[str, Any], on_conflict: Sequence[str]) -> Dict[str, Any]:
        """Insert, or update the row that has the same on_conflict columns."""
        pass

    @abstractmethod
    def delete_where(self, table: str, match: Dict[str, Any]) -> int:
        pass

    @abstractmethod
    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        pass
