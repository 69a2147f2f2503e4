# =============================================================================
# Email Delivery (stub)
# =============================================================================
#
# No mail transport is wired up. Messages are rendered from their template
# and written to the log so invite links can be picked up in development.
#
# =============================================================================

import logging
from typing import Any

from projecthub.config import get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

TEMPLATES = {
    "invite": {
        "subject": "You're invited to ProjectHub",
        "text": """
You have been invited to join ProjectHub as {role}.

Create your account here:
{register_url}

This invitation expires on {expires_at}.
        """,
    },
}


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Render and (for now) log outgoing emails."""

    def __init__(self):
        self.settings = get_settings()
        self.outbox: list[dict[str, Any]] = []

    async def send(
        self,
        to: str,
        template: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """
        Render a template and record it.

        Returns:
            False - nothing is actually delivered
        """
        if template not in TEMPLATES:
            logger.error(f"Unknown email template: {template}")
            return False

        tpl = TEMPLATES[template]
        try:
            body = tpl["text"].format(**(data or {}))
        except KeyError as e:
            logger.error(f"Missing template variable for '{template}': {e}")
            return False

        self.outbox.append({"to": to, "subject": tpl["subject"], "body": body})
        logger.warning(f"Email delivery not configured - would send '{template}' to {to}")
        logger.info(f"Email content: {body.strip()}")
        return False

    async def send_invite(self, email: str, role: str, invite_token: str, expires_at: str) -> bool:
        """Send the registration link for an invite."""
        register_url = f"{self.settings.app_url}/register?inviteToken={invite_token}"
        return await self.send(
            to=email,
            template="invite",
            data={"role": role, "register_url": register_url, "expires_at": expires_at},
        )


# Global instance
_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Get the email service singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
