import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from tqdm import tqdm

from core.errors import StoreError
from core.orders import OrderLinker
from core.session import ImportSession
from core.status_classifier import is_cancel_type, is_payment_type, is_refund_type
from models.import_result import ImportOutcome, ImportRunResult
from models.records import ImportJob, StagingRecord
from models.transaction import Transaction
from stores.base import IMPORT_JOBS, LEDGER, STAGING, PersistenceService


logger = logging.getLogger(__name__)

DEFAULT_FEE_THRESHOLD = Decimal("1.00")

# Category keys in selection order
CATEGORY_ORDER = ("new", "updates", "conflicts", "matches")


def is_fee_transaction(transaction: Transaction, threshold: Decimal = DEFAULT_FEE_THRESHOLD) -> bool:
    """
    Fee heuristic over the raw type label: refunds are never fees, cancellations
    always are, as is any non-payment type or a payment below the threshold.
    """
    label = transaction.transaction_type_raw
    if is_cancel_type(label):
        return True
    if is_refund_type(label):
        return False
    if not is_payment_type(label):
        return True
    return transaction.amount < threshold


def _save_job(store: PersistenceService, job: ImportJob):
    store.upsert(IMPORT_JOBS, job.model_dump(mode="json"), on_conflict=("id",))


class BatchImporter:
    """Writes selected reconciliation categories to the staging queue, one row at a time."""

    def __init__(self, session: ImportSession, order_linker: Optional[OrderLinker] = None):
        self.session = session
        self.store = session.store
        self.order_linker = order_linker
        self.batch_size = session.batch_size

    def import_selected(self,
                        transactions_by_category: Dict[str, List[Transaction]],
                        categories: Optional[List[str]] = None,
                        auto_create_orders: bool = True,
                        source_identifier: Optional[str] = None) -> ImportRunResult:
        """
        Import the chosen categories in fixed-size sequential batches.

        Every row is handled independently: a failed write is recorded on its
        outcome and the run continues. Rows already written stay written.
        """
        categories = categories or list(self.session.config["import"]["categories"])
        selected = [
            (category, tx)
            for category in CATEGORY_ORDER if category in categories
            for tx in transactions_by_category.get(category, [])
        ]

        job = ImportJob(
            id=str(uuid.uuid4()),
            source_identifier=source_identifier,
            total=len(selected),
        )
        _save_job(self.store, job)
        logger.info(f"Import job {job.id}: {len(selected)} transactions in categories {categories}")

        result = ImportRunResult(job=job)
        job.status = "processing"
        _save_job(self.store, job)

        try:
            with tqdm(total=len(selected), desc="Importing", unit="txn",
                      disable=not self.session.progress_enabled) as progress:
                for start in range(0, len(selected), self.batch_size):
                    for category, tx in selected[start:start + self.batch_size]:
                        outcome = self._import_one(tx, category, job.id, auto_create_orders)
                        result.outcomes.append(outcome)

                        job.processed += 1
                        if outcome.status in ("imported", "order_created"):
                            job.created += 1
                        elif outcome.status == "updated":
                            job.updated += 1
                        elif outcome.status == "error":
                            job.errors += 1
                        progress.update(1)

                    _save_job(self.store, job)
        except Exception as e:
            job.status = "failed"
            job.error_message = str(e)
            job.finished_at = datetime.now()
            _save_job(self.store, job)
            logger.error(f"Import job {job.id} failed: {e}", exc_info=True)
            raise

        job.status = "completed"
        job.finished_at = datetime.now()
        _save_job(self.store, job)
        logger.info(
            f"Import job {job.id} completed: created={job.created} updated={job.updated} "
            f"errors={job.errors} of {job.total}"
        )
        return result

    def _import_one(self, tx: Transaction, category: str, job_id: str, auto_create_orders: bool) -> ImportOutcome:
        outcome = ImportOutcome(uid=tx.uid, category=category, status="error")
        try:
            # The ledger may have gained this uid since reconciliation
            finalized = self.store.select(LEDGER, {
                "provider": self.session.provider,
                "provider_payment_id": tx.uid,
            })
            if finalized:
                outcome.status = "exists"

            elif tx.reconcile_status in ("update", "conflict"):
                values = {
                    "amount": str(tx.amount),
                    "status_normalized": tx.status,
                    "raw_payload": tx.audit_payload(),
                }
                if tx.matched_contact_id:
                    values["matched_profile_id"] = tx.matched_contact_id
                if not self.store.update(STAGING, {"bepaid_uid": tx.uid}, values):
                    raise StoreError(f"Staging record for {tx.uid} not found")
                outcome.status = "updated"

            elif tx.reconcile_status == "new":
                if self.store.select(STAGING, {"bepaid_uid": tx.uid}):
                    outcome.status = "exists"
                else:
                    self._insert_new(tx, job_id, outcome, auto_create_orders)

            else:
                outcome.status = "exists"

        except Exception as e:
            outcome.status = "error"
            outcome.error = str(e)
            logger.error(f"Failed to import {tx.uid}: {e}")

        tx.import_status = outcome.status
        tx.import_error = outcome.error
        return outcome

    def _insert_new(self, tx: Transaction, job_id: str, outcome: ImportOutcome, auto_create_orders: bool):
        record = StagingRecord(
            bepaid_uid=tx.uid,
            bepaid_order_id=tx.order_id,
            tracking_id=tx.tracking_id,
            amount=tx.amount,
            currency=tx.currency,
            status_normalized=tx.status,
            transaction_type=tx.transaction_type,
            description=tx.description,
            customer_email=tx.email,
            card_last4=tx.card_last4,
            card_holder=tx.card_holder,
            matched_profile_id=tx.matched_contact_id,
            paid_at=tx.paid_at,
            is_fee=is_fee_transaction(tx, self.session.fee_amount_threshold),
            import_batch_id=job_id,
            raw_payload=tx.audit_payload(),
        )
        row = self.store.insert(STAGING, record.model_dump(mode="json", exclude={"id"}))
        outcome.status = "imported"
        outcome.staging_record_id = row["id"]

        if not (auto_create_orders and self.order_linker and tx.matched_contact_id):
            return
        if self.order_linker.mapping_for(tx.description, tx.card_holder) is None:
            return
        try:
            outcome.order_id = self.order_linker.create_order_for_staging(row["id"])
            outcome.status = "order_created"
        except Exception as e:
            logger.warning(f"Order creation for {tx.uid} failed, imported without order: {e}")


def rollback_batch(store: PersistenceService, batch_id: str) -> int:
    """Delete the staging rows created by one import job."""
    deleted = store.delete_where(STAGING, {"import_batch_id": batch_id})
    store.update(IMPORT_JOBS, {"id": batch_id}, {"rolled_back": deleted})
    logger.info(f"Rolled back import job {batch_id}: {deleted} staging records deleted")
    return deleted
