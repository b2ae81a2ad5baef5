"""Tests for the Trac client registry."""

import pytest

from trac_relay.exceptions import ConfigurationError
from trac_relay.integrations.models import AuthType
from trac_relay.integrations.registry import TracRegistry
from trac_relay.integrations.trac import TracClient


@pytest.fixture
def bug_client(trac_server) -> TracClient:
    return TracClient("Bug", trac_server.url, AuthType.BASIC, http_session=trac_server.session)


class TestTracRegistry:
    """Test lookups and immutability."""

    def test_lookup_ignores_case(self, bug_client):
        """Test names are matched case-insensitively."""
        registry = TracRegistry({"Bug": bug_client})

        assert registry["bug"] is bug_client
        assert registry["BUG"] is bug_client
        assert "bUg" in registry

    def test_unknown_name(self, bug_client):
        """Test unknown names are absent."""
        registry = TracRegistry({"Bug": bug_client})

        assert "feature" not in registry
        with pytest.raises(KeyError):
            registry["feature"]

    def test_non_string_not_contained(self, bug_client):
        """Test membership checks with non-strings."""
        registry = TracRegistry({"Bug": bug_client})

        assert 42 not in registry

    def test_conflicting_names(self, bug_client):
        """Test names differing only by case are rejected."""
        with pytest.raises(ConfigurationError, match="Conflicting Trac name"):
            TracRegistry({"Bug": bug_client, "BUG": bug_client})

    def test_len_and_iter(self, bug_client):
        """Test iteration yields normalized names."""
        registry = TracRegistry({"Bug": bug_client})

        assert len(registry) == 1
        assert list(registry) == ["bug"]

    def test_immutable(self, bug_client):
        """Test the registry cannot be modified."""
        registry = TracRegistry({"Bug": bug_client})

        with pytest.raises(TypeError):
            registry["other"] = bug_client  # type: ignore[index]
