"""Email sending via Resend API.

Simple HTTP POST to Resend for verification-code emails. Each email carries
the plain-text code, the expiry notice, the verify link, and the QR image
attached inline (referenced from the HTML body by content id).
"""

import base64
import logging
from dataclasses import dataclass
from html import escape

import httpx

from app.core.config import settings
from app.core.errors import DeliveryError

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0

QR_CONTENT_ID = "verification-qr"
_QR_FILENAME = "verification-code.png"


@dataclass(frozen=True)
class VerificationEmail:
    """Rendered verification email.

    Attributes:
        subject: Subject line.
        html: HTML body; references the QR image as ``cid:verification-qr``.
        text: Plain-text alternative body.
    """

    subject: str
    html: str
    text: str


def build_verification_email(
    *, code: str, verify_url: str, expires_minutes: int
) -> VerificationEmail:
    """Render the subject and bodies of a verification email.

    Args:
        code: Six-digit verification code.
        verify_url: Link to the verify page carrying the opaque token.
        expires_minutes: Expiry window shown to the user.

    Returns:
        VerificationEmail with subject, HTML and text bodies.
    """
    safe_code = escape(code)
    safe_url = escape(verify_url, quote=True)
    html = f"""
        <div style="font-family: Arial, sans-serif; text-align: center; padding: 20px;">
          <h2>Your Verification Code</h2>
          <h1 style="color: #2563eb; font-size: 32px; letter-spacing: 5px;">{safe_code}</h1>
          <p>This code will expire in {expires_minutes} minutes.</p>
          <p><a href="{safe_url}">Open the verification page</a></p>
          <hr style="border: 0; border-top: 1px solid #eee; margin: 20px 0;" />
          <img src="cid:{QR_CONTENT_ID}" alt="QR Code" width="200" height="200" />
        </div>
    """
    text = (
        f"Your verification code is: {code}\n\n"
        f"Enter it on the verification page:\n{verify_url}\n\n"
        f"This code will expire in {expires_minutes} minutes. "
        "If you didn't request this, you can safely ignore this email."
    )
    return VerificationEmail(subject=settings.email_subject, html=html, text=text)


async def send_verification_email(
    *,
    to_email: str,
    code: str,
    verify_url: str,
    qr_png: bytes,
    expires_minutes: int,
) -> None:
    """Send a verification-code email via Resend.

    Unlike fire-and-forget notification mail, a failed send must reach the
    caller: the user has no other way to learn the code.

    Args:
        to_email: Recipient email address.
        code: Six-digit verification code.
        verify_url: Link to the verify page carrying the opaque token.
        qr_png: PNG bytes of the scannable image.
        expires_minutes: Expiry window shown to the user.

    Raises:
        DeliveryError: If the email channel is not configured or Resend
            rejects the request.
    """
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.error(
            "Email channel not configured (RESEND_API_KEY missing)",
            extra={"to_email": to_email},
        )
        raise DeliveryError()

    email = build_verification_email(
        code=code, verify_url=verify_url, expires_minutes=expires_minutes
    )

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": email.subject,
                    "html": email.html,
                    "text": email.text,
                    "attachments": [
                        {
                            "filename": _QR_FILENAME,
                            "content": base64.b64encode(qr_png).decode("ascii"),
                            "content_id": QR_CONTENT_ID,
                        }
                    ],
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.exception(
            "Failed to send verification email", extra={"to_email": to_email}
        )
        raise DeliveryError() from exc
