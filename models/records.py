from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from decimal import Decimal


class StagingRecord(BaseModel):
    """Row of the reconcile queue: a provider transaction awaiting posting."""

    bepaid_uid: str
    id: Optional[str] = None
    bepaid_order_id: Optional[str] = None
    tracking_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    status: str = "pending"
    status_normalized: Optional[str] = None
    transaction_type: Optional[str] = None
    description: Optional[str] = None
    customer_email: Optional[str] = None
    card_last4: Optional[str] = None
    card_holder: Optional[str] = None
    matched_profile_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    is_fee: bool = False
    source: str = "file_import"
    import_batch_id: Optional[str] = None
    order_id: Optional[str] = None
    raw_payload: Dict[str, Any] = Field(default_factory=dict)


class StatusOverride(BaseModel):
    """Operator-approved reinterpretation of a ledger row's status."""

    provider: str
    uid: str
    status_override: str
    original_status: Optional[str] = None
    reason: str
    source: str = "file_reconcile"
    created_at: datetime = Field(default_factory=datetime.now)


class ImportJob(BaseModel):
    """Progress and rollback handle for one batch import run."""

    id: str
    status: str = "pending"  # "pending", "processing", "completed", "failed"
    source_identifier: Optional[str] = None
    total: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    rolled_back: int = 0
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    error_message: Optional[str] = None


class ProductMapping(BaseModel):
    """Maps a provider plan title to a product/tariff for order creation."""

    bepaid_plan_title: str
    id: Optional[str] = None
    product_id: Optional[str] = None
    tariff_id: Optional[str] = None
    offer_id: Optional[str] = None
    auto_create_order: bool = False
    is_active: bool = True
