from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.config import build_config
from core.contact_index import ContactIndex
from core.transaction_matcher import IdentityMatcher
from models.records import ProductMapping
from stores.base import PRODUCT_MAPPINGS, PersistenceService


class ImportSession:
    """
    State for one Smart Import run, built once and passed explicitly.

    Holds the contact and card link snapshot, the product mappings and the
    settings shared by the matcher, reconciler and batch importer.
    """

    def __init__(self, store: PersistenceService, config: Optional[Dict[str, Any]] = None,
                 run_id: Optional[str] = None):
        self.store = store
        self.config = config or build_config()
        self.provider: str = self.config["import"]["provider"]
        self.run_id = run_id or f"{self.provider}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        self.contact_index = ContactIndex.from_store(store)
        self.matcher = IdentityMatcher(self.contact_index)
        self.product_mappings: List[ProductMapping] = [
            ProductMapping(**row) for row in store.select(PRODUCT_MAPPINGS)
        ]

    @property
    def amount_epsilon(self) -> Decimal:
        return Decimal(str(self.config["reconcile"]["amount_epsilon"]))

    @property
    def page_size(self) -> int:
        return int(self.config["reconcile"]["page_size"])

    @property
    def batch_size(self) -> int:
        return int(self.config["import"]["batch_size"])

    @property
    def fee_amount_threshold(self) -> Decimal:
        return Decimal(str(self.config["parsing"]["fee_amount_threshold"]))

    @property
    def progress_enabled(self) -> bool:
        return bool(self.config["progress"]["enabled"])
