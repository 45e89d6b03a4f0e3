from pydantic import BaseModel
from typing import Optional, Dict, Any


class MatchResult(BaseModel):
    """Result of resolving a transaction to a contact."""

    uid: str
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    confidence_score: float  # 0.0 - 1.0
    match_method: str  # "external_id", "email", "phone", "card", "telegram", "name", "name_translit", "none"
    match_details: Dict[str, Any] = {}
    is_matched: bool
    requires_review: bool = False

    @property
    def confidence_level(self) -> str:
        """Get confidence level based on score."""
        if self.confidence_score >= 0.85:
            return "high"
        elif self.confidence_score >= 0.60:
            return "medium"
        else:
            return "low"
