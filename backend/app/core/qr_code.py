"""Scannable image rendering for verification emails.

Renders a QR code PNG with the qrcode library. The content is either the
six-digit code or the verify link, depending on settings.verification_qr_content.
"""

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

# Pixels per module; 10 with a 2-module border yields ~250px for short content
_BOX_SIZE = 10
_BORDER = 2


def render_qr_png(content: str) -> bytes:
    """Encode content as a QR code and return the PNG bytes.

    Args:
        content: Text to encode (a numeric code or a URL).

    Returns:
        PNG image bytes.

    Raises:
        ValueError: If content is empty.
    """
    if not content:
        msg = "QR content must not be empty"
        raise ValueError(msg)

    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=_BOX_SIZE,
        border=_BORDER,
    )
    qr.add_data(content)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
