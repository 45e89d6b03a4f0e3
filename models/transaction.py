from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime
from decimal import Decimal


CANONICAL_STATUSES = ("succeeded", "refunded", "canceled", "failed", "pending")


class Transaction(BaseModel):
    """One provider transaction parsed from an uploaded statement file."""

    uid: str
    order_id: Optional[str] = None
    tracking_id: Optional[str] = None

    # Classification
    status_raw: str = ""
    status: Optional[str] = None  # one of CANONICAL_STATUSES, None when unrecognised
    transaction_type: str = "payment_card"  # "payment_card", "payment_erip", "refund", "cancel", "fee"
    transaction_type_raw: str = ""
    message: Optional[str] = None
    reason: Optional[str] = None

    # Financial (amount is always a non-negative magnitude)
    amount: Decimal = Decimal("0")
    source_amount_negative: bool = False
    currency: str = "BYN"
    fee_percent: Optional[Decimal] = None
    fee_amount: Optional[Decimal] = None
    total_fee: Optional[Decimal] = None
    transferred_amount: Optional[Decimal] = None

    description: Optional[str] = None
    created_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    transferred_at: Optional[datetime] = None

    # Customer
    email: Optional[str] = None
    emails: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    phones: List[str] = Field(default_factory=list)
    telegram_username: Optional[str] = None
    external_contact_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    region: Optional[str] = None
    ip_address: Optional[str] = None

    # Card / channel
    payment_method: Optional[str] = None
    card_mask: Optional[str] = None
    card_last4: Optional[str] = None
    card_holder: Optional[str] = None
    card_brand: Optional[str] = None
    card_bin: Optional[str] = None
    card_bank: Optional[str] = None
    three_d_secure: Optional[bool] = None
    auth_code: Optional[str] = None
    rrn: Optional[str] = None
    shop_id: Optional[str] = None
    shop_name: Optional[str] = None
    product_code: Optional[str] = None

    source_sheet: Optional[str] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict)

    # Filled by the matcher
    matched_contact_id: Optional[str] = None
    matched_contact_name: Optional[str] = None
    matched_by: str = "none"  # "external_id", "email", "phone", "card", "telegram", "name", "name_translit", "manual", "none"

    # Filled by the reconciler
    reconcile_status: Optional[str] = None  # "new", "update", "match", "conflict"
    reconcile_source: Optional[str] = None  # "ledger", "staging" or None
    mismatches: List[str] = Field(default_factory=list)  # "status", "amount", "sign"
    existing_record: Optional[Dict[str, Any]] = None

    # Filled by the batch importer
    import_status: str = "pending"  # "pending", "exists", "imported", "updated", "order_created", "error"
    import_error: Optional[str] = None

    @property
    def customer_full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None

    @property
    def is_matched(self) -> bool:
        return self.matched_contact_id is not None

    @property
    def status_unresolved(self) -> bool:
        return self.status is None

    def audit_payload(self) -> Dict[str, Any]:
        """JSON-safe copy embedded in the staging record."""
        return self.model_dump(mode="json", exclude={"raw_data", "existing_record"})


class ParseResult(BaseModel):
    """Transactions parsed from one statement file plus skipped row counts."""

    transactions: List[Transaction] = Field(default_factory=list)
    total_rows: int = 0
    skipped: Dict[str, int] = Field(default_factory=dict)  # reason -> count
    sheets: List[str] = Field(default_factory=list)

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())

    def skip(self, reason: str):
        self.skipped[reason] = self.skipped.get(reason, 0) + 1
