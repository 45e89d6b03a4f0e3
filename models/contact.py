from pydantic import BaseModel, Field
from typing import Optional, List, Dict


class Contact(BaseModel):
    """CRM contact as read from the persistence service."""

    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    emails: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    phones: List[str] = Field(default_factory=list)
    telegram_username: Optional[str] = None
    external_ids: Dict[str, str] = Field(default_factory=dict)  # e.g. {"amocrm": "123456"}

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.id

    def all_emails(self) -> List[str]:
        values = [self.email] if self.email else []
        return values + [e for e in self.emails if e]

    def all_phones(self) -> List[str]:
        values = [self.phone] if self.phone else []
        return values + [p for p in self.phones if p]


class CardIdentityLink(BaseModel):
    """Remembered (card last4, card holder) -> contact mapping."""

    card_last4: str
    card_holder: str
    contact_id: str
    id: Optional[str] = None
