import logging
from abc import ABC, abstractmethod

from models.contact import Contact


logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Delivers a message to a contact through their linked messaging account."""

    @abstractmethod
    def send(self, contact: Contact, message: str):
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to the log instead of delivering them."""

    def send(self, contact: Contact, message: str):
        logger.info(f"Notification to @{contact.telegram_username} ({contact.id}): {message}")


def notify_safely(notifier: Notifier, contact: Contact, message: str) -> bool:
    """Fire-and-forget delivery. Failures are logged and never propagate."""
    if notifier is None or contact is None or not contact.telegram_username:
        return False
    try:
        notifier.send(contact, message)
        return True
    except Exception as e:
        logger.warning(f"Notification to contact {contact.id} failed: {e}")
        return False
