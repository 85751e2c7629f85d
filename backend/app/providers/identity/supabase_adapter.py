"""Supabase Auth adapter for the Identity Directory.

Talks to the Supabase Auth (GoTrue) admin REST API with the service-role key.
Every call is a single HTTP request with an explicit timeout; no retries.
"""

import logging
import uuid
from typing import Any

import httpx

from app.providers.errors import (
    DirectoryAuthenticationError,
    DirectoryConflictError,
    DirectoryUnavailableError,
    IdentityDirectoryError,
)
from app.providers.identity.base import Identity, IdentityDirectory

logger = logging.getLogger(__name__)

_TIMEOUT = 10.0
_PAGE_SIZE = 1000
# Safety stop for the paged email scan (1000 users per page)
_MAX_PAGES = 100


class SupabaseIdentityDirectory(IdentityDirectory):
    """Identity Directory backed by Supabase Auth admin endpoints.

    Attributes:
        base_url: Supabase project URL (e.g. "https://xyz.supabase.co").
        redirect_to: Optional landing URL embedded in generated sign-in links.
    """

    def __init__(
        self,
        *,
        base_url: str,
        service_role_key: str,
        redirect_to: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            base_url: Supabase project URL.
            service_role_key: Service-role API key (admin privileges).
            redirect_to: Optional landing URL for sign-in links.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.redirect_to = redirect_to
        self._service_role_key = service_role_key
        self._transport = transport

    # =========================================================================
    # HTTP plumbing
    # =========================================================================

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            headers={
                "apikey": self._service_role_key,
                "Authorization": f"Bearer {self._service_role_key}",
            },
            timeout=_TIMEOUT,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one admin API request and map failures to directory errors."""
        try:
            async with self._client() as client:
                resp = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise DirectoryUnavailableError(
                f"Identity directory request failed: {method} {path}"
            ) from exc

        if resp.status_code in (401, 403):
            raise DirectoryAuthenticationError(
                f"Identity directory rejected credentials ({resp.status_code})"
            )
        if resp.status_code == 422 or resp.status_code == 409:
            raise DirectoryConflictError(
                f"Identity directory conflict ({resp.status_code}): {resp.text}"
            )
        if resp.status_code >= 500:
            raise DirectoryUnavailableError(
                f"Identity directory unavailable ({resp.status_code})"
            )
        if resp.status_code >= 400:
            raise IdentityDirectoryError(
                f"Identity directory error ({resp.status_code}): {resp.text}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise IdentityDirectoryError(
                "Identity directory returned a non-JSON response"
            ) from exc
        if not isinstance(data, dict):
            raise IdentityDirectoryError(
                "Identity directory returned an unexpected payload"
            )
        return data

    @staticmethod
    def _to_identity(user: dict[str, Any]) -> Identity:
        try:
            identity_id = uuid.UUID(str(user["id"]))
        except (KeyError, ValueError) as exc:
            raise IdentityDirectoryError("Identity payload has no valid id") from exc
        metadata = user.get("user_metadata") or {}
        return Identity(
            id=identity_id,
            email=user.get("email") or "",
            role=metadata.get("role"),
        )

    # =========================================================================
    # IdentityDirectory interface
    # =========================================================================

    async def find_by_email(self, email: str) -> Identity | None:
        """Scan the admin user listing page by page for a matching email.

        The admin API has no filter-by-email endpoint, so pages are walked
        until a match is found or a short page marks the end.
        """
        target = email.strip().lower()
        for page in range(1, _MAX_PAGES + 1):
            data = await self._request(
                "GET",
                "/admin/users",
                params={"page": page, "per_page": _PAGE_SIZE},
            )
            users = data.get("users") or []
            for user in users:
                if (user.get("email") or "").lower() == target:
                    return self._to_identity(user)
            if len(users) < _PAGE_SIZE:
                return None

        logger.warning(
            "Identity lookup stopped at page limit",
            extra={"max_pages": _MAX_PAGES},
        )
        return None

    async def create(self, email: str, role: str) -> Identity:
        data = await self._request(
            "POST",
            "/admin/users",
            json={
                "email": email,
                "email_confirm": True,
                "user_metadata": {"role": role},
            },
        )
        # Older GoTrue versions wrap the user object
        user = data.get("user", data)
        return self._to_identity(user)

    async def update_role_metadata(self, identity_id: uuid.UUID, role: str) -> None:
        await self._request(
            "PUT",
            f"/admin/users/{identity_id}",
            json={"user_metadata": {"role": role}},
        )

    async def generate_one_time_sign_in_link(self, email: str) -> str:
        body: dict[str, Any] = {"type": "magiclink", "email": email}
        if self.redirect_to:
            body["redirect_to"] = self.redirect_to

        data = await self._request("POST", "/admin/generate_link", json=body)

        properties = data.get("properties") or {}
        link = data.get("action_link") or properties.get("action_link")
        if not link:
            raise IdentityDirectoryError("Sign-in link missing from response")
        return str(link)
