from decimal import Decimal

import pytest

from core.batch_importer import BatchImporter, is_fee_transaction, rollback_batch
from core.orders import OrderLinker, OrderService, StoreOrderService
from stores.base import IMPORT_JOBS, LEDGER, ORDERS, STAGING


class BrokenOrderService(OrderService):
    def create_order(self, staging_record, contact_id, mapping):
        raise RuntimeError("orders service unavailable")


@pytest.fixture
def linker(session):
    return OrderLinker(session.store, StoreOrderService(session.store), session.product_mappings)


@pytest.fixture
def new_tx(make_tx):
    def _make(uid, **fields):
        fields.setdefault("reconcile_status", "new")
        fields.setdefault("email", "a@x.com")
        return make_tx(uid, **fields)
    return _make


def test_new_transaction_is_staged(session, new_tx):
    tx = new_tx("N1", matched_contact_id="c1", card_last4="1234", card_holder="ANNA IVANOVA")

    result = BatchImporter(session).import_selected({"new": [tx]})

    assert result.counts()["imported"] == 1
    rows = session.store.select(STAGING, {"bepaid_uid": "N1"})
    assert len(rows) == 1
    row = rows[0]
    assert row["status"] == "pending"
    assert row["status_normalized"] == "succeeded"
    assert row["source"] == "file_import"
    assert row["matched_profile_id"] == "c1"
    assert row["import_batch_id"] == result.job.id
    assert row["raw_payload"]["uid"] == "N1"
    assert Decimal(row["amount"]) == Decimal("100.00")
    assert tx.import_status == "imported"


def test_ledger_is_never_written(session, new_tx, make_tx):
    importer = BatchImporter(session)
    importer.import_selected({
        "new": [new_tx("N1")],
        "updates": [make_tx("S1", reconcile_status="update", matched_contact_id="c2", amount=Decimal("50.00"))],
    })
    assert session.store.write_counts.get(LEDGER, 0) == 0


def test_rerun_reports_existing_rows(session, new_tx):
    importer = BatchImporter(session)
    importer.import_selected({"new": [new_tx("N1")]})

    second = importer.import_selected({"new": [new_tx("N1")]})

    assert second.outcomes[0].status == "exists"
    assert session.store.count(STAGING, {"bepaid_uid": "N1"}) == 1


def test_uid_finalized_after_reconciliation_is_skipped(session, new_tx):
    result = BatchImporter(session).import_selected({"new": [new_tx("U1")]})

    assert result.outcomes[0].status == "exists"
    assert session.store.count(STAGING, {"bepaid_uid": "U1"}) == 0


def test_update_relinks_staging_row(session, make_tx):
    tx = make_tx("S2", reconcile_status="update", matched_contact_id="c2", amount=Decimal("75.00"))

    result = BatchImporter(session).import_selected({"updates": [tx]})

    assert result.outcomes[0].status == "updated"
    row = session.store.select(STAGING, {"bepaid_uid": "S2"})[0]
    assert row["matched_profile_id"] == "c2"
    assert row["raw_payload"]["matched_contact_id"] == "c2"
    assert result.job.updated == 1


def test_missing_staging_row_is_an_error_and_run_continues(session, make_tx, new_tx):
    gone = make_tx("GONE", reconcile_status="update", matched_contact_id="c2")

    result = BatchImporter(session).import_selected({"new": [new_tx("N1")], "updates": [gone]})

    statuses = {o.uid: o.status for o in result.outcomes}
    assert statuses == {"N1": "imported", "GONE": "error"}
    assert "not found" in result.errors[0].error
    assert gone.import_error
    assert result.job.status == "completed"
    assert result.job.errors == 1


def test_only_selected_categories_are_imported(session, new_tx, make_tx):
    match = make_tx("S1", reconcile_status="match", amount=Decimal("50.00"))

    result = BatchImporter(session).import_selected(
        {"new": [new_tx("N1")], "matches": [match]},
        categories=["matches"],
    )

    assert [o.uid for o in result.outcomes] == ["S1"]
    assert result.outcomes[0].status == "exists"
    assert session.store.count(STAGING, {"bepaid_uid": "N1"}) == 0


def test_job_is_tracked_across_batches(session, new_tx):
    session.config["import"]["batch_size"] = 2
    transactions = [new_tx(f"N{i}") for i in range(5)]

    result = BatchImporter(session).import_selected({"new": transactions}, source_identifier="statement.csv")

    job = session.store.select(IMPORT_JOBS, {"id": result.job.id})[0]
    assert job["status"] == "completed"
    assert job["total"] == 5
    assert job["processed"] == 5
    assert job["created"] == 5
    assert job["source_identifier"] == "statement.csv"
    assert job["finished_at"] is not None


def test_matched_transaction_with_mapping_gets_order(session, new_tx, linker):
    tx = new_tx("N1", matched_contact_id="c1", description="  курс   базовый ")

    result = BatchImporter(session, order_linker=linker).import_selected({"new": [tx]})

    outcome = result.outcomes[0]
    assert outcome.status == "order_created"
    assert outcome.order_id
    staging = session.store.select(STAGING, {"bepaid_uid": "N1"})[0]
    assert staging["order_id"] == outcome.order_id
    assert session.store.count(ORDERS, {"profile_id": "c1"}) == 1


def test_order_creation_can_be_disabled(session, new_tx, linker):
    tx = new_tx("N1", matched_contact_id="c1", description="Курс Базовый")
    result = BatchImporter(session, order_linker=linker).import_selected({"new": [tx]}, auto_create_orders=False)
    assert result.outcomes[0].status == "imported"
    assert session.store.count(ORDERS) == 0


def test_inactive_mapping_creates_no_order(session, new_tx, linker):
    tx = new_tx("N1", matched_contact_id="c1", description="Архивный курс")
    result = BatchImporter(session, order_linker=linker).import_selected({"new": [tx]})
    assert result.outcomes[0].status == "imported"


def test_order_failure_keeps_imported_row(session, new_tx):
    linker = OrderLinker(session.store, BrokenOrderService(), session.product_mappings)
    tx = new_tx("N1", matched_contact_id="c1", description="Курс Базовый")

    result = BatchImporter(session, order_linker=linker).import_selected({"new": [tx]})

    assert result.outcomes[0].status == "imported"
    assert result.outcomes[0].order_id is None
    assert session.store.count(STAGING, {"bepaid_uid": "N1"}) == 1


@pytest.mark.parametrize("type_raw, amount, expected", [
    ("Платеж", "100.00", False),
    ("Платеж", "0.50", True),
    ("Отмена", "100.00", True),
    ("Возврат средств", "0.50", False),
    ("Комиссия", "100.00", True),
    ("", "100.00", False),
])
def test_fee_heuristic(make_tx, type_raw, amount, expected):
    tx = make_tx(transaction_type_raw=type_raw, amount=Decimal(amount))
    assert is_fee_transaction(tx) is expected


def test_fee_flag_is_stored(session, new_tx):
    BatchImporter(session).import_selected({"new": [new_tx("F1", amount=Decimal("0.30"))]})
    assert session.store.select(STAGING, {"bepaid_uid": "F1"})[0]["is_fee"] is True


def test_rollback_removes_only_that_batch(session, new_tx):
    importer = BatchImporter(session)
    first = importer.import_selected({"new": [new_tx("N1"), new_tx("N2")]})
    importer.import_selected({"new": [new_tx("N3")]})

    deleted = rollback_batch(session.store, first.job.id)

    assert deleted == 2
    assert session.store.count(STAGING, {"bepaid_uid": "N3"}) == 1
    assert session.store.count(STAGING, {"bepaid_uid": "S1"}) == 1
    assert session.store.select(IMPORT_JOBS, {"id": first.job.id})[0]["rolled_back"] == 2
