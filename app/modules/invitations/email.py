import html
import logging
from typing import Optional

import httpx

from app.config.settings import settings

logger = logging.getLogger(__name__)


def build_invitation_email(project_name: str, inviter: str, role: str, link: str, ttl_days: int):
    """(subject, html body, text body)"""
    subject = f"You're invited to join {project_name}"
    safe_project = html.escape(project_name)
    safe_inviter = html.escape(inviter)
    safe_role = html.escape(role)
    html_body = f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; color: #1e293b;">
    <h2>You're invited to join {safe_project}!</h2>
    <p>{safe_inviter} has invited you to join <strong>{safe_project}</strong> as a <strong>{safe_role}</strong> on PileTrackerPro.</p>
    <p>Click the button below to accept your invitation and create your account:</p>
    <p><a href="{link}" style="display: inline-block; padding: 12px 24px; background-color: #3b82f6; color: white; text-decoration: none; border-radius: 6px;">Accept Invitation</a></p>
    <p>Or copy this link: {link}</p>
    <p>This invitation will expire in {ttl_days} days.</p>
  </body>
</html>"""
    text_body = (
        f"Hello,\n\n"
        f"{inviter} has invited you to join {project_name} as a {role} on PileTrackerPro.\n\n"
        f"Click here to accept your invitation:\n{link}\n\n"
        f"This invitation will expire in {ttl_days} days.\n\n"
        f"Best regards,\nPileTrackerPro Team\n"
    )
    return subject, html_body, text_body


def send_email(to: str, subject: str, html_body: str, text_body: str, http: Optional[httpx.Client] = None) -> bool:
    """Send through the Resend API. Returns False (and logs) on any failure."""
    if not settings.resend_api_key:
        logger.warning(f"RESEND_API_KEY is not configured; invitation email to {to} not sent")
        return False
    client = http or httpx.Client(timeout=settings.http_timeout_seconds)
    try:
        response = client.post(
            settings.resend_api_url,
            headers={"Authorization": f"Bearer {settings.resend_api_key}"},
            json={
                "from": settings.email_from,
                "to": [to],
                "subject": subject,
                "html": html_body,
                "text": text_body
            }
        )
        response.raise_for_status()
        logger.info(f"Invitation email sent to {to}")
        return True
    except httpx.HTTPError as e:
        logger.error(f"Failed to send invitation email to {to}: {e}")
        return False
    finally:
        if http is None:
            client.close()
