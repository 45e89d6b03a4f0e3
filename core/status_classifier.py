"""
Folding of free-text bePaid labels (Russian and English) into the closed
transaction type and canonical status vocabularies.

Every heuristic for reading a type, status or message label lives here.
Unknown labels map to None rather than to a guessed status.
"""

from typing import NamedTuple, Optional

from models.transaction import CANONICAL_STATUSES


_STATUS_ALIASES = {
    "succeeded": (
        "succeeded", "successful", "success", "completed", "processed", "captured",
        "успешно", "успешный", "успешная", "успех", "оплачен", "оплачено",
    ),
    "refunded": ("refunded", "refund", "возврат", "возврат средств", "возвращен", "возвращено"),
    "canceled": (
        "canceled", "cancelled", "cancel", "void", "voided", "authorization_void",
        "отмена", "отменен", "отменена", "отменено",
    ),
    "failed": (
        "failed", "fail", "declined", "expired", "incomplete", "error",
        "ошибка", "неуспешно", "неуспешный", "неуспешная", "отклонено", "отклонен",
    ),
    "pending": ("pending", "processing", "ожидание", "в обработке", "новый"),
}

_EXACT_STATUS = {alias: status for status, aliases in _STATUS_ALIASES.items() for alias in aliases}

# Order matters: negative forms contain the positive stems ("неуспешно" contains "успешн")
_STATUS_FRAGMENTS = (
    ("failed", ("неуспеш", "unsuccess", "fail", "declin", "ошибк", "отклон", "error")),
    ("refunded", ("возврат", "refund")),
    ("canceled", ("отмен", "cancel", "void")),
    ("succeeded", ("успеш", "success", "succeed", "complet")),
    ("pending", ("pending", "ожидан", "process")),
)

_DECLINE_FRAGMENTS = (
    "declined", "отклон", "error", "insufficient", "reject", "fail", "ошибк",
    "denied", "refused", "cancel",
)

_ERIP_FRAGMENTS = ("erip", "ерип")


class LabelClassification(NamedTuple):
    transaction_type: str
    status: Optional[str]


def _clean(label: Optional[str]) -> str:
    return (label or "").strip().lower()


def to_canonical_status(raw: Optional[str]) -> Optional[str]:
    """Map a status label to a canonical status, or None when unrecognised."""
    label = _clean(raw)
    if not label:
        return None
    if label in _EXACT_STATUS:
        return _EXACT_STATUS[label]
    for status, fragments in _STATUS_FRAGMENTS:
        if any(fragment in label for fragment in fragments):
            return status
    return None


def is_canonical_status(value: Optional[str]) -> bool:
    return value in CANONICAL_STATUSES


def require_canonical_status(raw: Optional[str], context: str = "") -> str:
    status = to_canonical_status(raw)
    if status is None:
        where = f" ({context})" if context else ""
        raise ValueError(f"Unrecognised payment status {raw!r}{where}")
    return status


def is_refund_type(label: Optional[str]) -> bool:
    text = _clean(label)
    return "возврат" in text or "refund" in text


def is_cancel_type(label: Optional[str]) -> bool:
    text = _clean(label)
    return "отмен" in text or "cancel" in text or "void" in text


def is_fee_type(label: Optional[str]) -> bool:
    text = _clean(label)
    return "комисс" in text or text == "fee" or text.startswith("fee ") or "_fee" in text


def is_payment_type(label: Optional[str]) -> bool:
    """Payment-like type labels; a missing label counts as a payment."""
    text = _clean(label)
    if not text:
        return True
    return any(word in text for word in ("платеж", "платёж", "оплата", "payment", "erip", "ерип"))


def is_erip_channel(payment_method: Optional[str]) -> bool:
    text = _clean(payment_method)
    return any(fragment in text for fragment in _ERIP_FRAGMENTS)


def is_decline_message(message: Optional[str]) -> bool:
    text = _clean(message)
    return any(fragment in text for fragment in _DECLINE_FRAGMENTS)


def classify_transaction_type(raw_type: Optional[str], erip: bool = False) -> str:
    """Fold a type label into payment_card, payment_erip, refund, cancel or fee."""
    if is_refund_type(raw_type):
        return "refund"
    if is_cancel_type(raw_type):
        return "cancel"
    if is_fee_type(raw_type):
        return "fee"
    if erip or is_erip_channel(raw_type):
        return "payment_erip"
    return "payment_card"


def classify_label(raw_type: Optional[str],
                   raw_status: Optional[str],
                   raw_message: Optional[str] = None,
                   payment_method: Optional[str] = None,
                   erip: bool = False) -> LabelClassification:
    """
    Classify one statement row from its type, status and message labels.

    The transaction type decides refunds and cancellations, then a decline
    message marks the row failed, then the status label is read.
    """
    transaction_type = classify_transaction_type(
        raw_type, erip=erip or is_erip_channel(payment_method)
    )

    if transaction_type == "refund":
        return LabelClassification(transaction_type, "refunded")
    if transaction_type == "cancel":
        return LabelClassification(transaction_type, "canceled")
    if is_decline_message(raw_message):
        return LabelClassification(transaction_type, "failed")
    return LabelClassification(transaction_type, to_canonical_status(raw_status))
