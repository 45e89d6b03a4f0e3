from decimal import Decimal

import pytest

from core.config import build_config
from core.session import ImportSession
from models.transaction import Transaction
from stores.base import CARD_LINKS, CONTACTS, LEDGER, PRODUCT_MAPPINGS, STAGING
from stores.memory_store import InMemoryStore


CONTACT_ROWS = [
    {"id": "c1", "full_name": "Анна Иванова", "email": "a@x.com", "phone": "+375291112233"},
    {"id": "c2", "full_name": "Сергей Петров", "email": "sp@example.com", "emails": ["sergei.old@example.com"],
     "phone": "+375447654321", "telegram_username": "@sergei_p"},
    {"id": "c3", "full_name": "Иван Иванов"},
    {"id": "c4", "full_name": "Мария Смирнова", "email": "maria1@example.com"},
    {"id": "c5", "full_name": "Смирнова Мария", "email": "maria2@example.com"},
    {"id": "c6", "full_name": "Алексей Козлов", "external_ids": {"amocrm": "777"}},
    {"id": "c7", "full_name": "Ольга Новикова", "telegram_username": "olga_nov"},
]

CARD_LINK_ROWS = [
    {"card_last4": "4242", "card_holder": "olga novikava", "contact_id": "c7"},
]


@pytest.fixture
def config(tmp_path):
    return build_config({
        "paths": {
            "store": str(tmp_path / "store.json"),
            "output_base": str(tmp_path / "output"),
            "logs_dir": str(tmp_path / "logs"),
        },
        "progress": {"enabled": False},
    })


@pytest.fixture
def store():
    return InMemoryStore({
        CONTACTS: CONTACT_ROWS,
        CARD_LINKS: CARD_LINK_ROWS,
        LEDGER: [
            {"provider": "bepaid", "provider_payment_id": "U1", "status": "succeeded",
             "amount": "100.00", "currency": "BYN"},
            {"provider": "bepaid", "provider_payment_id": "R1", "status": "refunded",
             "amount": "-30.00", "currency": "BYN"},
        ],
        STAGING: [
            {"bepaid_uid": "S1", "status": "pending", "status_normalized": "succeeded",
             "amount": "50.00", "currency": "BYN", "matched_profile_id": "c1"},
            {"bepaid_uid": "S2", "status": "pending", "status_normalized": "succeeded",
             "amount": "75.00", "currency": "BYN", "matched_profile_id": None},
        ],
        PRODUCT_MAPPINGS: [
            {"bepaid_plan_title": "Курс Базовый", "product_id": "p1", "tariff_id": "t1",
             "auto_create_order": True, "is_active": True},
            {"bepaid_plan_title": "Архивный курс", "product_id": "p2", "tariff_id": "t2",
             "auto_create_order": True, "is_active": False},
        ],
    })


@pytest.fixture
def session(store, config):
    return ImportSession(store, config, run_id="bepaid_test")


@pytest.fixture
def make_tx():
    """Factory for parsed transactions with sensible defaults."""

    def _make(uid="T1", **fields):
        defaults = {
            "status_raw": "Успешно",
            "status": "succeeded",
            "transaction_type": "payment_card",
            "transaction_type_raw": "Платеж",
            "amount": Decimal("100.00"),
        }
        defaults.update(fields)
        return Transaction(uid=uid, **defaults)

    return _make
