"""Tests for verification email rendering and sending via Resend."""

import base64
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import SecretStr

from app.core.config import settings
from app.core.email import (
    QR_CONTENT_ID,
    build_verification_email,
    send_verification_email,
)
from app.core.errors import DeliveryError
from app.core.qr_code import render_qr_png

_RESEND_URL = "https://api.resend.com/emails"
_VERIFY_LINK = "http://localhost:5173/verify?token=abc"


def _ok_response() -> httpx.Response:
    return httpx.Response(200, json={"id": "email_1"}, request=httpx.Request("POST", _RESEND_URL))


class TestBuildVerificationEmail:
    """Tests for build_verification_email()."""

    def test_contains_code_expiry_link_and_inline_image(self):
        email = build_verification_email(
            code="482913", verify_url=_VERIFY_LINK, expires_minutes=15
        )

        assert email.subject == "MUC Library Verification Code"
        assert "482913" in email.html
        assert "This code will expire in 15 minutes." in email.html
        assert f'src="cid:{QR_CONTENT_ID}"' in email.html
        assert _VERIFY_LINK in email.html

    def test_text_alternative_has_code_and_link(self):
        email = build_verification_email(
            code="482913", verify_url=_VERIFY_LINK, expires_minutes=15
        )

        assert "482913" in email.text
        assert _VERIFY_LINK in email.text
        assert "15 minutes" in email.text

    def test_link_is_html_escaped(self):
        email = build_verification_email(
            code="482913",
            verify_url='http://x/verify?token=a"><script>',
            expires_minutes=15,
        )

        assert "<script>" not in email.html


class TestRenderQrPng:
    """Tests for render_qr_png()."""

    def test_returns_png_bytes(self):
        png = render_qr_png("482913")
        assert png.startswith(b"\x89PNG\r\n\x1a\n")

    def test_handles_urls(self):
        assert render_qr_png(_VERIFY_LINK).startswith(b"\x89PNG")

    def test_empty_content_raises(self):
        with pytest.raises(ValueError, match="empty"):
            render_qr_png("")


class TestSendVerificationEmail:
    """Tests for send_verification_email()."""

    async def test_posts_to_resend_with_attachment(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr("re_test_key"))
        png = render_qr_png("482913")

        with patch.object(
            httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=_ok_response()
        ) as mock_post:
            await send_verification_email(
                to_email="student@muc.edu.eg",
                code="482913",
                verify_url=_VERIFY_LINK,
                qr_png=png,
                expires_minutes=15,
            )

        mock_post.assert_awaited_once()
        assert mock_post.call_args.args[0] == _RESEND_URL
        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"] == {"Authorization": "Bearer re_test_key"}
        payload = kwargs["json"]
        assert payload["to"] == "student@muc.edu.eg"
        assert payload["from"] == settings.email_from
        attachment = payload["attachments"][0]
        assert attachment["content_id"] == QR_CONTENT_ID
        assert base64.b64decode(attachment["content"]) == png

    async def test_missing_api_key_raises_delivery_error(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr(""))

        with pytest.raises(DeliveryError):
            await send_verification_email(
                to_email="student@muc.edu.eg",
                code="482913",
                verify_url=_VERIFY_LINK,
                qr_png=b"png",
                expires_minutes=15,
            )

    async def test_http_failure_raises_delivery_error(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr("re_test_key"))
        rejected = httpx.Response(
            422, json={"message": "invalid"}, request=httpx.Request("POST", _RESEND_URL)
        )

        with (
            patch.object(
                httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=rejected
            ),
            pytest.raises(DeliveryError) as exc_info,
        ):
            await send_verification_email(
                to_email="student@muc.edu.eg",
                code="482913",
                verify_url=_VERIFY_LINK,
                qr_png=b"png",
                expires_minutes=15,
            )

        assert exc_info.value.status_code == 502
        assert "invalid" not in exc_info.value.message
