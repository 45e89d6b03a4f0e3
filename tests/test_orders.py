import pytest

from core.errors import OrderCreationError
from core.notifications import Notifier, notify_safely
from core.orders import OrderLinker, StoreOrderService, find_mapping
from models.contact import Contact
from models.records import ProductMapping
from stores.base import ORDERS, STAGING


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def send(self, contact, message):
        self.sent.append((contact.id, message))


class FailingNotifier(Notifier):
    def send(self, contact, message):
        raise ConnectionError("bot offline")


def stage(store, uid, **fields):
    row = {"bepaid_uid": uid, "status": "pending", "status_normalized": "succeeded",
           "amount": "120.00", "currency": "BYN", "description": "Курс Базовый"}
    row.update(fields)
    return store.insert(STAGING, row)["id"]


def linker_for(session, notifier=None):
    return OrderLinker(session.store, StoreOrderService(session.store), session.product_mappings, notifier)


def test_find_mapping_ignores_inactive_and_manual_mappings():
    mappings = [
        ProductMapping(bepaid_plan_title="Курс", product_id="p0", auto_create_order=False),
        ProductMapping(bepaid_plan_title="Курс Pro", product_id="p1", auto_create_order=True, is_active=False),
        ProductMapping(bepaid_plan_title="Курс Pro Max", product_id="p2", auto_create_order=True),
    ]
    assert find_mapping(mappings, "Курс") is None
    assert find_mapping(mappings, "курс pro") is None
    assert find_mapping(mappings, None, "КУРС PRO MAX").product_id == "p2"
    assert find_mapping(mappings, None, None) is None


def test_order_is_created_once_per_staging_record(session):
    staging_id = stage(session.store, "N1", matched_profile_id="c1")
    linker = linker_for(session)

    order_id = linker.create_order_for_staging(staging_id)

    assert linker.create_order_for_staging(staging_id) == order_id
    assert session.store.count(ORDERS) == 1
    order = session.store.select(ORDERS, {"id": order_id})[0]
    assert order["product_id"] == "p1"
    assert order["tariff_id"] == "t1"
    assert order["bepaid_uid"] == "N1"


def test_order_needs_a_contact(session):
    staging_id = stage(session.store, "N1")
    with pytest.raises(OrderCreationError, match="no matched contact"):
        linker_for(session).create_order_for_staging(staging_id)


def test_order_needs_a_mapping(session):
    staging_id = stage(session.store, "N1", matched_profile_id="c1", description="Неизвестный тариф")
    with pytest.raises(OrderCreationError, match="No active product mapping"):
        linker_for(session).create_order_for_staging(staging_id)


def test_unknown_staging_record(session):
    with pytest.raises(OrderCreationError, match="not found"):
        linker_for(session).create_order_for_staging("missing")


def test_contact_with_telegram_is_notified(session):
    notifier = RecordingNotifier()
    staging_id = stage(session.store, "N1", matched_profile_id="c2")

    linker_for(session, notifier).create_order_for_staging(staging_id)

    assert len(notifier.sent) == 1
    assert notifier.sent[0][0] == "c2"
    assert "Курс Базовый" in notifier.sent[0][1]


def test_notification_failure_does_not_fail_the_order(session):
    staging_id = stage(session.store, "N1", matched_profile_id="c2")

    order_id = linker_for(session, FailingNotifier()).create_order_for_staging(staging_id)

    assert order_id
    assert session.store.select(STAGING, {"id": staging_id})[0]["order_id"] == order_id


def test_notify_safely_needs_a_telegram_handle():
    notifier = RecordingNotifier()
    assert not notify_safely(notifier, Contact(id="x", full_name="No Handle"), "hi")
    assert notify_safely(notifier, Contact(id="y", full_name="Has Handle", telegram_username="handle"), "hi")
    assert not notify_safely(None, Contact(id="y", telegram_username="handle"), "hi")
