import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fuzzywuzzy import fuzz

from core.normalizers import (
    clean_telegram_username,
    name_key,
    normalize_email,
    normalize_name,
    normalize_phone,
)
from core.transliteration import is_latin_name, transliterate_to_cyrillic
from models.contact import CardIdentityLink, Contact
from stores.base import CARD_LINKS, CONTACTS, PersistenceService


logger = logging.getLogger(__name__)


def card_key(card_last4: Optional[str], card_holder: Optional[str]) -> Optional[Tuple[str, str]]:
    if not card_last4 or not card_holder:
        return None
    holder = normalize_name(card_holder)
    if not holder:
        return None
    return card_last4.strip(), holder


class ContactIndex:
    """Read-only in-memory snapshot of contacts and card links for one import session."""

    def __init__(self, contacts: Iterable[Contact], card_links: Iterable[CardIdentityLink] = ()):
        self._contacts: Dict[str, Contact] = {}
        self._external_index: Dict[str, str] = {}
        self._email_index: Dict[str, str] = {}
        self._phone_index: Dict[str, str] = {}
        self._telegram_index: Dict[str, str] = {}
        self._name_index: Dict[str, List[str]] = {}
        self._card_index: Dict[Tuple[str, str], str] = {}

        for contact in contacts:
            self._add_contact(contact)
        for link in card_links:
            self.add_card_link(link)

    @classmethod
    def from_store(cls, store: PersistenceService) -> "ContactIndex":
        """Load one full snapshot of contacts and card links."""
        contacts = [Contact(**row) for row in store.select(CONTACTS)]
        links = [CardIdentityLink(**row) for row in store.select(CARD_LINKS)]
        logger.info(f"Loaded contact index: {len(contacts)} contacts, {len(links)} card links")
        return cls(contacts, links)

    def _add_contact(self, contact: Contact):
        self._contacts[contact.id] = contact

        for external_id in contact.external_ids.values():
            if external_id:
                self._external_index.setdefault(str(external_id).strip(), contact.id)

        for email in contact.all_emails():
            key = normalize_email(email)
            if key:
                self._email_index.setdefault(key, contact.id)

        for phone in contact.all_phones():
            key = normalize_phone(phone)
            if key:
                self._phone_index.setdefault(key, contact.id)

        telegram = clean_telegram_username(contact.telegram_username)
        if telegram:
            self._telegram_index.setdefault(telegram, contact.id)

        key = name_key(contact.full_name)
        if key:
            ids = self._name_index.setdefault(key, [])
            if contact.id not in ids:
                ids.append(contact.id)

    def add_card_link(self, link: CardIdentityLink):
        key = card_key(link.card_last4, link.card_holder)
        if key:
            self._card_index[key] = link.contact_id

    def __len__(self) -> int:
        return len(self._contacts)

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        return self._contacts.get(contact_id)

    def find_by_external_id(self, external_id: Optional[str]) -> Optional[str]:
        if not external_id:
            return None
        return self._external_index.get(str(external_id).strip())

    def find_by_email(self, email: Optional[str]) -> Optional[str]:
        return self._email_index.get(normalize_email(email))

    def find_by_phone(self, phone: Optional[str]) -> Optional[str]:
        return self._phone_index.get(normalize_phone(phone))

    def find_by_telegram(self, username: Optional[str]) -> Optional[str]:
        cleaned = clean_telegram_username(username)
        return self._telegram_index.get(cleaned) if cleaned else None

    def find_by_card(self, card_last4: Optional[str], card_holder: Optional[str]) -> Optional[str]:
        key = card_key(card_last4, card_holder)
        return self._card_index.get(key) if key else None

    def find_by_name(self, name: Optional[str]) -> Optional[str]:
        """Unique contact with this full name. A name shared by several contacts matches nobody."""
        key = name_key(name)
        if not key:
            return None
        ids = self._name_index.get(key, [])
        if len(ids) > 1:
            logger.info(f"Ambiguous name '{name}' shared by {len(ids)} contacts, not matching")
            return None
        return ids[0] if ids else None

    def suggest_contacts(self, name: Optional[str], limit: int = 3, threshold: int = 80) -> List[Dict[str, Any]]:
        """
        Fuzzy name suggestions for an operator reviewing an unmatched row.

        Latin names are also compared in transliterated form. Suggestions are
        advisory only and never link a transaction.
        """
        if not name or not normalize_name(name):
            return []

        candidates = [normalize_name(name)]
        if is_latin_name(name):
            candidates.append(normalize_name(transliterate_to_cyrillic(name)))

        scored = []
        for contact in self._contacts.values():
            contact_name = normalize_name(contact.full_name)
            if not contact_name:
                continue
            score = max(fuzz.token_sort_ratio(candidate, contact_name, force_ascii=False) for candidate in candidates)
            if score >= threshold:
                scored.append({
                    "contact_id": contact.id,
                    "contact_name": contact.display_name,
                    "score": score,
                })

        scored.sort(key=lambda s: s["score"], reverse=True)
        return scored[:limit]
