"""
Three-way reconciliation of parsed transactions against the staging queue and
the payments ledger.

Classification is pure: snapshots are fetched up front (in pages bounded by the
store's query limit) and every transaction lands in exactly one of
new / update / match / conflict.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from core.status_classifier import is_payment_type, to_canonical_status
from models.transaction import Transaction
from stores.base import LEDGER, OVERRIDES, STAGING, PersistenceService


logger = logging.getLogger(__name__)

DEFAULT_EPSILON = Decimal("0.01")

Snapshot = Dict[str, Dict[str, Any]]


def to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise InvalidOperation(f"Non-finite amount {value!r}")
    return amount


def amounts_agree(file_amount: Decimal, stored_amount: Optional[Decimal],
                  epsilon: Decimal = DEFAULT_EPSILON) -> bool:
    """Equal within epsilon, comparing magnitudes when either side is negative."""
    if stored_amount is None:
        return True
    if file_amount < 0 or stored_amount < 0:
        return abs(abs(file_amount) - abs(stored_amount)) <= epsilon
    return abs(file_amount - stored_amount) <= epsilon


def has_sign_mismatch(transaction: Transaction, stored_amount: Optional[Decimal]) -> bool:
    """
    A payment whose persisted amount has the opposite sign of the file amount.

    The magnitude comparison above tolerates this, so it is reported separately
    instead of being silently treated as agreement.
    """
    if stored_amount is None or stored_amount == 0 or transaction.amount == 0:
        return False
    if transaction.transaction_type not in ("payment_card", "payment_erip"):
        return False
    if not is_payment_type(transaction.transaction_type_raw):
        return False
    return transaction.source_amount_negative != (stored_amount < 0)


def _paged(values: Sequence[str], page_size: int):
    for start in range(0, len(values), page_size):
        yield values[start:start + page_size]


def fetch_snapshots(store: PersistenceService, uids: Sequence[str], provider: str = "bepaid",
                    page_size: Optional[int] = None):
    """
    Staging rows, ledger rows and status overrides for the given uids, keyed by uid.

    Lookups are issued in pages no larger than the store allows.
    """
    page_size = min(page_size or store.max_page_size, store.max_page_size)
    unique_uids = list(dict.fromkeys(uid for uid in uids if uid))

    staging: Snapshot = {}
    ledger: Snapshot = {}
    overrides: Snapshot = {}
    for page in _paged(unique_uids, page_size):
        for row in store.select_in(STAGING, "bepaid_uid", page):
            staging[row["bepaid_uid"]] = row
        for row in store.select_in(LEDGER, "provider_payment_id", page, {"provider": provider}):
            ledger[row["provider_payment_id"]] = row
        for row in store.select_in(OVERRIDES, "uid", page, {"provider": provider}):
            overrides[row["uid"]] = row

    logger.info(
        f"Fetched snapshots for {len(unique_uids)} uids: "
        f"{len(staging)} staging, {len(ledger)} ledger, {len(overrides)} overrides"
    )
    return staging, ledger, overrides


def effective_ledger_status(ledger_row: Dict[str, Any], override: Optional[Dict[str, Any]]) -> Optional[str]:
    """Ledger status as reinterpreted by an accepted override, if any."""
    if override and override.get("status_override"):
        return override["status_override"]
    return to_canonical_status(ledger_row.get("status")) or ledger_row.get("status")


def _compare(transaction: Transaction, stored_status: Optional[str], raw_amount,
             epsilon: Decimal) -> List[str]:
    mismatches = []
    if transaction.status != stored_status:
        mismatches.append("status")
    try:
        stored_amount = to_decimal(raw_amount)
    except InvalidOperation:
        logger.warning(f"Stored amount {raw_amount!r} for {transaction.uid} is not a number")
        mismatches.append("amount")
        return mismatches
    if not amounts_agree(transaction.amount, stored_amount, epsilon):
        mismatches.append("amount")
    if has_sign_mismatch(transaction, stored_amount):
        mismatches.append("sign")
    return mismatches


def classify(transaction: Transaction,
             staging_row: Optional[Dict[str, Any]],
             ledger_row: Optional[Dict[str, Any]],
             override: Optional[Dict[str, Any]] = None,
             epsilon: Decimal = DEFAULT_EPSILON) -> str:
    """Classify one transaction and record the verdict on it."""
    if ledger_row is not None:
        status = effective_ledger_status(ledger_row, override)
        mismatches = _compare(transaction, status, ledger_row.get("amount"), epsilon)
        transaction.reconcile_source = "ledger"
        transaction.existing_record = ledger_row
        transaction.mismatches = mismatches
        hard = [m for m in mismatches if m != "sign"]
        transaction.reconcile_status = "conflict" if hard else "match"

    elif staging_row is not None:
        status = staging_row.get("status_normalized")
        mismatches = _compare(transaction, status, staging_row.get("amount"), epsilon)
        transaction.reconcile_source = "staging"
        transaction.existing_record = staging_row
        transaction.mismatches = mismatches
        hard = [m for m in mismatches if m != "sign"]
        if hard:
            transaction.reconcile_status = "conflict"
        elif transaction.matched_contact_id and transaction.matched_contact_id != staging_row.get("matched_profile_id"):
            transaction.reconcile_status = "update"
        else:
            transaction.reconcile_status = "match"

    else:
        transaction.reconcile_source = None
        transaction.existing_record = None
        transaction.mismatches = []
        transaction.reconcile_status = "new"

    return transaction.reconcile_status


def reconcile(transactions: List[Transaction],
              staging_snapshot: Snapshot,
              ledger_snapshot: Snapshot,
              overrides: Optional[Snapshot] = None,
              epsilon: Decimal = DEFAULT_EPSILON) -> Dict[str, List[Transaction]]:
    """Split transactions into new, updates, matches and conflicts."""
    overrides = overrides or {}
    buckets: Dict[str, List[Transaction]] = {"new": [], "updates": [], "matches": [], "conflicts": []}
    category_for = {"new": "new", "update": "updates", "match": "matches", "conflict": "conflicts"}

    for transaction in transactions:
        verdict = classify(
            transaction,
            staging_snapshot.get(transaction.uid),
            ledger_snapshot.get(transaction.uid),
            overrides.get(transaction.uid),
            epsilon,
        )
        buckets[category_for[verdict]].append(transaction)

    logger.info("Reconciled: " + ", ".join(f"{k}={len(v)}" for k, v in buckets.items()))
    return buckets
