from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class NotificationProvider(ABC):
    """Delivers rendered booking notifications."""

    name = "base"

    @abstractmethod
    async def send_email(self, to: str, subject: str, body: str, meta: Optional[Dict] = None) -> Dict:
        raise NotImplementedError()


class LogProvider(NotificationProvider):
    """Writes messages to the log instead of sending them (dev/testing)."""

    name = "log"

    async def send_email(self, to: str, subject: str, body: str, meta: Optional[Dict] = None) -> Dict:
        logger.info("[LogProvider] Sending email to %s subject=%s", to, subject)
        logger.debug("Email body: %s", body)
        return {"status": "sent", "provider": "log"}


PROVIDERS = {LogProvider.name: LogProvider}


def get_provider(name: str) -> NotificationProvider:
    try:
        return PROVIDERS[name]()
    except KeyError:
        raise ValueError(f"Unknown notification provider: {name}")
