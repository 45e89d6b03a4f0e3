import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.errors import OrderCreationError
from core.notifications import Notifier, notify_safely
from models.contact import Contact
from models.records import ProductMapping
from stores.base import CONTACTS, ORDERS, STAGING, PersistenceService


logger = logging.getLogger(__name__)


def _title_key(value: Optional[str]) -> str:
    return " ".join((value or "").lower().split())


def find_mapping(mappings: List[ProductMapping],
                 description: Optional[str],
                 card_holder: Optional[str] = None) -> Optional[ProductMapping]:
    """Active auto-create mapping whose plan title matches the description or card holder."""
    candidates = {_title_key(description), _title_key(card_holder)} - {""}
    if not candidates:
        return None
    for mapping in mappings:
        if not (mapping.is_active and mapping.auto_create_order):
            continue
        if _title_key(mapping.bepaid_plan_title) in candidates:
            return mapping
    return None


class OrderService(ABC):
    """Downstream commercial order creation."""

    @abstractmethod
    def create_order(self, staging_record: Dict[str, Any], contact_id: str, mapping: ProductMapping) -> str:
        """Create an order and return its id."""
        pass


class StoreOrderService(OrderService):
    """Writes orders into the orders table of the persistence service."""

    def __init__(self, store: PersistenceService):
        self.store = store

    def create_order(self, staging_record: Dict[str, Any], contact_id: str, mapping: ProductMapping) -> str:
        row = self.store.insert(ORDERS, {
            "profile_id": contact_id,
            "staging_record_id": staging_record["id"],
            "bepaid_uid": staging_record.get("bepaid_uid"),
            "product_id": mapping.product_id,
            "tariff_id": mapping.tariff_id,
            "offer_id": mapping.offer_id,
            "amount": staging_record.get("amount"),
            "currency": staging_record.get("currency"),
            "status": "paid",
            "source": "bepaid_import",
            "created_at": datetime.now().isoformat(),
        })
        return row["id"]


class OrderLinker:
    """
    Creates the order for an imported staging record.

    Keyed by the staging record id so it can be retried on its own after the
    import; a record that already has an order is returned unchanged.
    """

    def __init__(self, store: PersistenceService, order_service: OrderService,
                 mappings: List[ProductMapping], notifier: Optional[Notifier] = None):
        self.store = store
        self.order_service = order_service
        self.mappings = mappings
        self.notifier = notifier

    def mapping_for(self, description: Optional[str], card_holder: Optional[str] = None) -> Optional[ProductMapping]:
        return find_mapping(self.mappings, description, card_holder)

    def create_order_for_staging(self, staging_id: str) -> str:
        rows = self.store.select(STAGING, {"id": staging_id})
        if not rows:
            raise OrderCreationError(f"Staging record {staging_id} not found")
        record = rows[0]

        if record.get("order_id"):
            return record["order_id"]

        contact_id = record.get("matched_profile_id")
        if not contact_id:
            raise OrderCreationError(f"Staging record {staging_id} has no matched contact")

        mapping = self.mapping_for(record.get("description"), record.get("card_holder"))
        if mapping is None:
            raise OrderCreationError(f"No active product mapping for '{record.get('description')}'")

        try:
            order_id = self.order_service.create_order(record, contact_id, mapping)
        except OrderCreationError:
            raise
        except Exception as e:
            raise OrderCreationError(f"Order creation failed for staging record {staging_id}: {e}") from e

        self.store.update(STAGING, {"id": staging_id}, {"order_id": order_id})
        logger.info(f"Created order {order_id} for staging record {staging_id} ({mapping.bepaid_plan_title})")

        contacts = self.store.select(CONTACTS, {"id": contact_id})
        if contacts:
            contact = Contact(**contacts[0])
            notify_safely(
                self.notifier,
                contact,
                f"Payment of {record.get('amount')} {record.get('currency') or ''} received, "
                f"access to '{mapping.bepaid_plan_title}' is being set up.",
            )
        return order_id
