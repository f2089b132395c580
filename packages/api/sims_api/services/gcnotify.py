# This project was developed with assistance from AI tools.
"""GCNotify email client.

Notifications are best effort: failures are logged and reported as False,
never raised, so a notification outage cannot fail the workflow that
triggered it. With no API key configured, sending is a logged no-op.
"""

import logging

import httpx

from ..core.config import settings

logger = logging.getLogger(__name__)

ACCESS_REQUEST_SUBJECT = "SIMS: A request for access has been received."
ACCESS_REQUEST_BODY = (
    "A request for access to the Species Inventory Management System has been submitted."
)
ACCESS_APPROVAL_SUBJECT = "SIMS: Your request for access has been approved."
ACCESS_APPROVAL_BODY = (
    "Your request for access to the Species Inventory Management System has been approved."
)


class GCNotifyService:
    """Send templated emails through the GCNotify REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GCNOTIFY_API_KEY
        self.base_url = (base_url or settings.GCNOTIFY_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GCNOTIFY_TIMEOUT
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send_email(
        self,
        email_address: str,
        template_id: str,
        personalisation: dict[str, str],
    ) -> bool:
        """POST one email notification. Returns True when GCNotify accepted it."""
        if not self.enabled:
            logger.info("GCNotify not configured, skipping email to %s", email_address)
            return False

        payload = {
            "email_address": email_address,
            "template_id": template_id,
            "personalisation": personalisation,
        }
        headers = {
            "Authorization": f"ApiKey-v1 {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/email", json=payload, headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("GCNotify email to %s failed: %s", email_address, exc)
            return False
        return True


async def send_access_request_email() -> bool:
    """Tell the administrators a new access request is waiting."""
    link = f"{settings.APP_HOST}/admin/users?authLogin=true"
    return await GCNotifyService().send_email(
        settings.GCNOTIFY_ADMIN_EMAIL,
        settings.GCNOTIFY_ACCESS_REQUEST_TEMPLATE,
        {
            "subject": ACCESS_REQUEST_SUBJECT,
            "header": ACCESS_REQUEST_SUBJECT,
            "body1": f"{ACCESS_REQUEST_BODY} [click here.]({link})",
            "body2": "",
            "footer": settings.APP_HOST,
        },
    )


async def send_access_approval_email(email_address: str) -> bool:
    """Tell a requester their access request was approved."""
    link = f"{settings.APP_HOST}/login"
    return await GCNotifyService().send_email(
        email_address,
        settings.GCNOTIFY_APPROVAL_TEMPLATE,
        {
            "subject": ACCESS_APPROVAL_SUBJECT,
            "header": ACCESS_APPROVAL_SUBJECT,
            "body1": f"{ACCESS_APPROVAL_BODY} [click here.]({link})",
            "body2": "",
            "footer": settings.APP_HOST,
        },
    )
