import logging

from core.contact_index import card_key
from core.session import ImportSession
from models.contact import CardIdentityLink, Contact
from models.transaction import Transaction
from stores.base import CARD_LINKS, CONTACTS, STAGING


logger = logging.getLogger(__name__)


def link_transaction(session: ImportSession, transaction: Transaction, contact_id: str,
                     remember_card: bool = False) -> Transaction:
    """
    Operator-confirmed link of a transaction to a contact.

    With remember_card, the (card last4, card holder) pair is stored so later
    card-only payments match the same contact. An existing staging row for the
    uid is relinked as well.
    """
    contact = session.contact_index.get_contact(contact_id)
    if contact is None:
        rows = session.store.select(CONTACTS, {"id": contact_id})
        if not rows:
            raise ValueError(f"Unknown contact {contact_id}")
        contact = Contact(**rows[0])

    transaction.matched_contact_id = contact.id
    transaction.matched_contact_name = contact.display_name
    transaction.matched_by = "manual"

    key = card_key(transaction.card_last4, transaction.card_holder) if remember_card else None
    if key:
        # Stored in lookup form so one card and holder keeps a single row
        last4, holder = key
        link = CardIdentityLink(card_last4=last4, card_holder=holder, contact_id=contact.id)
        row = session.store.upsert(
            CARD_LINKS,
            link.model_dump(exclude={"id"}),
            on_conflict=("card_last4", "card_holder"),
        )
        session.contact_index.add_card_link(CardIdentityLink(**row))
        logger.info(f"Remembered card *{link.card_last4} ({link.card_holder}) for contact {contact.id}")

    updated = session.store.update(STAGING, {"bepaid_uid": transaction.uid}, {"matched_profile_id": contact.id})
    if updated:
        logger.info(f"Relinked staging row {transaction.uid} to contact {contact.id}")

    return transaction
