"""Tests for the access policy (domain gate and role overrides)."""

import string

import pytest
from hypothesis import given
from hypothesis import strategies as st

from app.core.config import Settings
from app.core.errors import InvalidDomainError
from app.services.access_policy import AccessPolicy, normalize_email

_DOMAIN = "@muc.edu.eg"

_local_parts = st.text(
    alphabet=string.ascii_letters + string.digits,
    min_size=1,
    max_size=20,
)


class TestNormalizeEmail:
    """Tests for normalize_email()."""

    def test_strips_and_lowercases(self):
        assert normalize_email("  Ahmed.Ali@MUC.EDU.EG\n") == "ahmed.ali@muc.edu.eg"

    @given(st.text(max_size=40))
    def test_is_idempotent(self, raw):
        """Normalizing twice changes nothing."""
        once = normalize_email(raw)
        assert normalize_email(once) == once


class TestDomainGate:
    """Tests for AccessPolicy.require_allowed_domain()."""

    @given(_local_parts)
    def test_institutional_emails_pass(self, local):
        """Any local part at the institutional domain is accepted."""
        policy = AccessPolicy(allowed_domain=_DOMAIN)
        assert policy.require_allowed_domain(f"{local}@MUC.edu.eg") == (
            f"{local}@muc.edu.eg".lower()
        )

    @given(_local_parts, st.sampled_from(["gmail.com", "muc.edu", "muc.edu.eg.io", "xmuc.edu.eg"]))
    def test_other_domains_fail(self, local, domain):
        """Anything not ending in the suffix is rejected."""
        policy = AccessPolicy(allowed_domain=_DOMAIN)
        with pytest.raises(InvalidDomainError):
            policy.require_allowed_domain(f"{local}@{domain}")

    def test_error_names_the_domain(self):
        policy = AccessPolicy(allowed_domain=_DOMAIN)
        with pytest.raises(InvalidDomainError) as exc_info:
            policy.require_allowed_domain("student@gmail.com")

        assert exc_info.value.code == "INVALID_DOMAIN"
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid email domain. Must be @muc.edu.eg"


class TestRoleFor:
    """Tests for AccessPolicy.role_for()."""

    def test_override_matches_case_insensitively(self):
        policy = AccessPolicy(
            allowed_domain=_DOMAIN, role_overrides={"Dean@MUC.edu.eg": "admin"}
        )
        assert policy.role_for("dean@muc.edu.eg") == "admin"
        assert policy.role_for(" DEAN@muc.edu.eg") == "admin"

    @given(_local_parts)
    def test_unlisted_emails_are_students(self, local):
        """Without an override every email is a student."""
        policy = AccessPolicy(
            allowed_domain=_DOMAIN, role_overrides={"dean@muc.edu.eg": "admin"}
        )
        email = f"{local}@muc.edu.eg"
        expected = "admin" if email.lower() == "dean@muc.edu.eg" else "student"
        assert policy.role_for(email) == expected

    @given(_local_parts)
    def test_role_is_deterministic(self, local):
        """The same email always yields the same role."""
        policy = AccessPolicy(
            allowed_domain=_DOMAIN, role_overrides={f"{local}@muc.edu.eg": "admin"}
        )
        assert policy.role_for(f"{local}@muc.edu.eg") == "admin"
        assert policy.role_for(f"{local.upper()}@MUC.EDU.EG") == "admin"

    def test_overrides_are_read_only(self):
        policy = AccessPolicy(allowed_domain=_DOMAIN, role_overrides={"a@muc.edu.eg": "admin"})
        with pytest.raises(TypeError):
            policy.role_overrides["b@muc.edu.eg"] = "admin"  # type: ignore[index]


class TestFromSettings:
    """Tests for AccessPolicy.from_settings()."""

    def test_admin_emails_become_admin_overrides(self):
        config = Settings(admin_emails=["Head.Librarian@muc.edu.eg", " "])
        policy = AccessPolicy.from_settings(config)

        assert policy.allowed_domain == "@muc.edu.eg"
        assert dict(policy.role_overrides) == {"head.librarian@muc.edu.eg": "admin"}
        assert policy.role_for("head.librarian@muc.edu.eg") == "admin"

    def test_empty_allow_list_makes_everyone_student(self):
        policy = AccessPolicy.from_settings(Settings(admin_emails=[]))
        assert policy.role_for("anyone@muc.edu.eg") == "student"
