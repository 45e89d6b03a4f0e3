from pydantic import BaseModel, Field
from typing import List, Dict, Optional

from models.records import ImportJob


class ImportOutcome(BaseModel):
    """Per-transaction result of a batch import."""

    uid: str
    category: str  # reconcile status the row was imported under
    status: str  # "exists", "imported", "updated", "order_created", "error"
    error: Optional[str] = None
    staging_record_id: Optional[str] = None
    order_id: Optional[str] = None


class ImportRunResult(BaseModel):
    """Outcome of a whole batch import run."""

    job: ImportJob
    outcomes: List[ImportOutcome] = Field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        totals = {"exists": 0, "imported": 0, "updated": 0, "order_created": 0, "error": 0}
        for outcome in self.outcomes:
            totals[outcome.status] = totals.get(outcome.status, 0) + 1
        return totals

    @property
    def errors(self) -> List[ImportOutcome]:
        return [o for o in self.outcomes if o.status == "error"]


class OverrideResult(BaseModel):
    """Outcome of applying status overrides for ledger conflicts."""

    applied: List[str] = Field(default_factory=list)
    skipped: Dict[str, str] = Field(default_factory=dict)  # uid -> reason
    errors: Dict[str, str] = Field(default_factory=dict)  # uid -> message
