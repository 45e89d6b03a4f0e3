import logging
from typing import List

from core.status_classifier import is_canonical_status
from models.import_result import OverrideResult
from models.records import StatusOverride
from models.transaction import Transaction
from stores.base import OVERRIDES, PersistenceService


logger = logging.getLogger(__name__)

SKIP_NOT_LEDGER = "not a ledger conflict"
SKIP_UNKNOWN_STATUS = "unknown status"
SKIP_SAME_STATUS = "status unchanged"


def build_override_reason(tx: Transaction, original_status: str) -> str:
    return (
        f"Statement reports '{tx.status_raw or tx.status}' ({tx.status}) for {tx.uid}, "
        f"ledger has '{original_status}'. Amount {tx.amount} {tx.currency}."
    )


def apply_overrides(store: PersistenceService, conflicts: List[Transaction],
                    provider: str = "bepaid") -> OverrideResult:
    """
    Record a status override for each conflict against the ledger.

    The ledger row itself is never written. Conflicts whose status could not
    be resolved are skipped, since the override table only accepts canonical
    statuses.
    """
    result = OverrideResult()

    for tx in conflicts:
        if tx.reconcile_status != "conflict" or tx.reconcile_source != "ledger":
            result.skipped[tx.uid] = SKIP_NOT_LEDGER
            continue
        if not is_canonical_status(tx.status):
            result.skipped[tx.uid] = SKIP_UNKNOWN_STATUS
            continue

        if "status" not in tx.mismatches:
            # Amount-only divergence, no status to reinterpret
            result.skipped[tx.uid] = SKIP_SAME_STATUS
            continue

        original_status = (tx.existing_record or {}).get("status")
        override = StatusOverride(
            provider=provider,
            uid=tx.uid,
            status_override=tx.status,
            original_status=original_status,
            reason=build_override_reason(tx, original_status),
        )
        try:
            store.upsert(OVERRIDES, override.model_dump(mode="json"), on_conflict=("provider", "uid"))
            result.applied.append(tx.uid)
        except Exception as e:
            result.errors[tx.uid] = str(e)
            logger.error(f"Failed to record status override for {tx.uid}: {e}")

    logger.info(
        f"Status overrides: applied={len(result.applied)} skipped={len(result.skipped)} "
        f"errors={len(result.errors)}"
    )
    return result
