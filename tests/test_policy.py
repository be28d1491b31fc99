"""Tests for the risk-level allow-list policy."""

import pytest

from app.policies.allow_list import AllowListPolicy


class TestAllowListPolicy:
    """Test the three decision branches."""

    @pytest.mark.parametrize("level", ["low", "LOW", "None", " none "])
    def test_listed_level_is_approved(self, level):
        """Known levels on the allow-list are approved regardless of case."""
        policy = AllowListPolicy.from_setting("low,none")
        assert policy.decide(level) is True

    @pytest.mark.parametrize("level", ["high", "medium", "extreme"])
    def test_unlisted_level_is_rejected(self, level):
        """Known levels missing from the allow-list are rejected."""
        policy = AllowListPolicy.from_setting("low,none")
        assert policy.decide(level) is False

    @pytest.mark.parametrize("level", [None, "", "   "])
    def test_unknown_level_approved_for_conservative_list(self, level):
        """A missing level is approved when neither medium nor high is allowed."""
        policy = AllowListPolicy.from_setting("low,none")
        assert policy.decide(level) is True

    @pytest.mark.parametrize("allow_list", ["none,low,medium", "high", "low,HIGH", "Medium"])
    def test_unknown_level_rejected_for_tolerant_list(self, allow_list):
        """A missing level is rejected when medium or high is allowed."""
        policy = AllowListPolicy.from_setting(allow_list)
        assert policy.decide(None) is False

    def test_tolerant_list_still_approves_listed_level(self):
        """Allowing elevated risk does not affect known levels."""
        policy = AllowListPolicy.from_setting("none,low,medium")
        assert policy.decide("medium") is True
        assert policy.decide("high") is False


class TestAllowListParsing:
    """Test construction of the allow-list."""

    def test_from_setting_normalizes_tokens(self):
        """Tokens are trimmed, lowercased and kept in order."""
        policy = AllowListPolicy.from_setting(" Low ,NONE,,low")
        assert policy.allowed_levels == ("low", "none")

    @pytest.mark.parametrize("raw", [None, "", " , "])
    def test_empty_allow_list(self, raw):
        """An empty list allows nothing but approves unknown levels."""
        policy = AllowListPolicy.from_setting(raw)

        assert policy.allowed_levels == ()
        assert policy.decide("none") is False
        assert policy.decide(None) is True

    def test_direct_construction(self):
        """Direct construction normalizes the same way."""
        policy = AllowListPolicy(("HIGH", "low"))

        assert policy.allowed_levels == ("high", "low")
        assert policy.tolerates_elevated_risk is True
