import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.exceptions import MagicLinkDeliveryError

logger = logging.getLogger(__name__)


class MagicLinkSender:
    """
    Delivers sign-in links out of band.

    With MAGIC_LINK_WEBHOOK_URL set, the link is POSTed to that endpoint
    (an email relay). Without it the link is only logged, which is enough for
    local development.
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 10.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, email: str, link: str) -> None:
        if not self.webhook_url:
            logger.info(f"Magic link for {email}: {link}")
            return

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.webhook_url,
                    json={
                        "to": email,
                        "subject": "Your sign-in link",
                        "link": link,
                    },
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Magic link delivery to {email} failed: {e}")
            raise MagicLinkDeliveryError()

        logger.info(f"Magic link sent to {email}")


def build_magic_link(token: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/admin/login/magic?token={token}"


magic_link_sender = MagicLinkSender(
    webhook_url=settings.MAGIC_LINK_WEBHOOK_URL,
    timeout=settings.MAGIC_LINK_TIMEOUT_SECONDS,
)


def get_magic_link_sender() -> MagicLinkSender:
    """Dependency returning the configured sender."""
    return magic_link_sender
