"""Tests for workspace domain restriction."""

import pytest

from candidate_organizer.auth.workspace import (
    email_domain,
    validate_workspace_domain,
    workspace_domain_for,
)
from candidate_organizer.errors import DomainMismatchError


class TestEmailDomain:
    @pytest.mark.parametrize(
        "email,expected",
        [
            ("alice@co.com", "co.com"),
            ("Alice@CO.com", "co.com"),
            ("a.b+tag@sub.co.com", "sub.co.com"),
        ],
    )
    def test_domain_extracted(self, email, expected):
        assert email_domain(email) == expected

    @pytest.mark.parametrize("email", ["", "alice", "@co.com", "alice@", "a@b@co.com"])
    def test_malformed_returns_none(self, email):
        assert email_domain(email) is None


class TestValidateWorkspaceDomain:
    def test_unrestricted_accepts_anyone(self, make_identity):
        validate_workspace_domain(make_identity(email="bob@gmail.com"), "")

    def test_matching_email_domain_accepted(self, make_identity):
        validate_workspace_domain(make_identity(email="alice@co.com"), "co.com")

    def test_comparison_is_case_insensitive(self, make_identity):
        validate_workspace_domain(make_identity(email="alice@CO.COM"), "Co.Com")

    def test_matching_hosted_domain_accepted(self, make_identity):
        identity = make_identity(email="alice@co.com", hosted_domain="co.com")
        validate_workspace_domain(identity, "co.com")

    def test_mismatched_email_domain_rejected(self, make_identity):
        with pytest.raises(DomainMismatchError) as exc_info:
            validate_workspace_domain(make_identity(email="mallory@evil.com"), "co.com")
        assert "evil.com" in exc_info.value.message
        assert exc_info.value.status_code == 403

    def test_mismatched_hosted_domain_rejected_even_when_email_matches(self, make_identity):
        identity = make_identity(email="alice@co.com", hosted_domain="other.com")
        with pytest.raises(DomainMismatchError, match="hosted domain other.com"):
            validate_workspace_domain(identity, "co.com")

    def test_lookalike_subdomain_rejected(self, make_identity):
        with pytest.raises(DomainMismatchError):
            validate_workspace_domain(make_identity(email="alice@co.com.evil.com"), "co.com")

    def test_malformed_email_rejected(self, make_identity):
        with pytest.raises(DomainMismatchError, match="invalid email format"):
            validate_workspace_domain(make_identity(email="not-an-email"), "co.com")


class TestWorkspaceDomainFor:
    def test_prefers_hosted_domain(self, make_identity):
        identity = make_identity(email="alice@alias.com", hosted_domain="CO.com")
        assert workspace_domain_for(identity) == "co.com"

    def test_falls_back_to_email_domain(self, make_identity):
        assert workspace_domain_for(make_identity(email="alice@co.com")) == "co.com"

    def test_malformed_email_yields_empty(self, make_identity):
        assert workspace_domain_for(make_identity(email="broken")) == ""
