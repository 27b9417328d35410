"""Tests for the policy resolver — proves it loads and validates the deployment parameters."""

import copy
import json
from pathlib import Path

import pytest

from gallery.errors import InvalidConfiguration
from gallery.models.badge import ONE_DAY
from gallery.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def params() -> dict:
    with (CONFIG_DIR / "gallery_params.json").open("r", encoding="utf-8") as f:
        return json.load(f)


class TestShippedParameters:
    def test_owner(self, resolver: PolicyResolver) -> None:
        assert resolver.owner_id() == "owner"

    def test_tags(self, resolver: PolicyResolver) -> None:
        assert resolver.sponsorship_tags() == ["badge_create", "badge_extend"]

    def test_proposal_duration_is_seven_days(self, resolver: PolicyResolver) -> None:
        assert resolver.proposal_duration() == 7 * ONE_DAY

    def test_badge_pricing(self, resolver: PolicyResolver) -> None:
        config = resolver.badge_config()
        assert config.rate_per_day == 10**23
        assert config.max_active_duration == 90 * ONE_DAY
        assert config.min_creation_deposit == 25 * 10**23

    def test_storage_byte_price(self, resolver: PolicyResolver) -> None:
        assert resolver.storage_byte_price() == 10**19


class TestValidation:
    def test_zero_rate_rejected(self, params: dict) -> None:
        bad = copy.deepcopy(params)
        bad["badges"]["rate_per_day"] = "0"
        with pytest.raises(InvalidConfiguration):
            PolicyResolver(bad)

    def test_tags_must_be_strings(self, params: dict) -> None:
        bad = copy.deepcopy(params)
        bad["sponsorship"]["tags"] = ["ok", 3]
        with pytest.raises(ValueError, match="tags"):
            PolicyResolver(bad)

    def test_non_positive_proposal_duration(self, params: dict) -> None:
        bad = copy.deepcopy(params)
        bad["sponsorship"]["proposal_duration_ns"] = 0
        with pytest.raises(ValueError):
            PolicyResolver(bad)

    def test_missing_duration_means_no_expiry(self, params: dict) -> None:
        relaxed = copy.deepcopy(params)
        del relaxed["sponsorship"]["proposal_duration_ns"]
        assert PolicyResolver(relaxed).proposal_duration() is None

    def test_default_byte_price(self, params: dict) -> None:
        relaxed = copy.deepcopy(params)
        del relaxed["host"]
        assert PolicyResolver(relaxed).storage_byte_price() == 10**19
