import logging
from typing import Any, Dict, List, Optional

from core.contact_index import ContactIndex
from core.transliteration import is_latin_name, transliterate_to_cyrillic
from models.match_result import MatchResult
from models.transaction import Transaction


logger = logging.getLogger(__name__)

# Confidence per match method, from most to least specific key
MATCH_CONFIDENCE = {
    "external_id": 1.0,
    "email": 1.0,
    "phone": 0.95,
    "card": 0.9,
    "telegram": 0.9,
    "name": 0.7,
    "name_translit": 0.6,
}

# Name keys collide between distinct people, so name matches go to an operator
REVIEW_METHODS = ("name", "name_translit")


class IdentityMatcher:
    """Resolves transactions to contacts using a fixed key priority over a preloaded index."""

    def __init__(self, contact_index: ContactIndex):
        self.contact_index = contact_index

    def _result(self, transaction: Transaction, contact_id: str, method: str,
                details: Dict[str, Any]) -> MatchResult:
        contact = self.contact_index.get_contact(contact_id)
        return MatchResult(
            uid=transaction.uid,
            contact_id=contact_id,
            contact_name=contact.display_name if contact else None,
            confidence_score=MATCH_CONFIDENCE[method],
            match_method=method,
            match_details=details,
            is_matched=True,
            requires_review=method in REVIEW_METHODS,
        )

    def match_transaction(self, transaction: Transaction) -> MatchResult:
        """Match a single transaction; the first strategy that hits wins."""
        index = self.contact_index

        # Strategy 1: foreign CRM id already linked to a contact
        contact_id = index.find_by_external_id(transaction.external_contact_id)
        if contact_id:
            return self._result(transaction, contact_id, "external_id",
                                {"matched_external_id": transaction.external_contact_id})

        # Strategy 2: any candidate email
        for email in transaction.emails or ([transaction.email] if transaction.email else []):
            contact_id = index.find_by_email(email)
            if contact_id:
                return self._result(transaction, contact_id, "email", {"matched_email": email})

        # Strategy 3: any candidate phone
        for phone in transaction.phones or ([transaction.phone] if transaction.phone else []):
            contact_id = index.find_by_phone(phone)
            if contact_id:
                return self._result(transaction, contact_id, "phone", {"matched_phone": phone})

        # Strategy 4: remembered card
        contact_id = index.find_by_card(transaction.card_last4, transaction.card_holder)
        if contact_id:
            return self._result(transaction, contact_id, "card", {
                "card_last4": transaction.card_last4,
                "card_holder": transaction.card_holder,
            })

        # Strategy 5: Telegram handle
        contact_id = index.find_by_telegram(transaction.telegram_username)
        if contact_id:
            return self._result(transaction, contact_id, "telegram",
                                {"matched_telegram": transaction.telegram_username})

        # Strategy 6: exact full name, then transliterated card holder
        result = self._name_match(transaction)
        if result:
            return result

        return MatchResult(
            uid=transaction.uid,
            contact_id=None,
            confidence_score=0.0,
            match_method="none",
            match_details={},
            is_matched=False,
            requires_review=True
        )

    def _name_match(self, transaction: Transaction) -> Optional[MatchResult]:
        for name in (transaction.customer_full_name, transaction.card_holder):
            contact_id = self.contact_index.find_by_name(name)
            if contact_id:
                return self._result(transaction, contact_id, "name", {"matched_name": name})

        holder = transaction.card_holder
        if holder and is_latin_name(holder):
            transliterated = transliterate_to_cyrillic(holder)
            contact_id = self.contact_index.find_by_name(transliterated)
            if contact_id:
                return self._result(transaction, contact_id, "name_translit", {
                    "card_holder": holder,
                    "transliterated": transliterated,
                })

        return None

    def match_all(self, transactions: List[Transaction]) -> List[MatchResult]:
        """Match every transaction and record the outcome on it."""
        results = []
        for transaction in transactions:
            result = self.match_transaction(transaction)
            transaction.matched_contact_id = result.contact_id
            transaction.matched_contact_name = result.contact_name
            transaction.matched_by = result.match_method
            results.append(result)

        matched = sum(1 for r in results if r.is_matched)
        logger.info(f"Matched {matched}/{len(results)} transactions")
        return results
