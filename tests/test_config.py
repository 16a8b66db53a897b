"""Tests for configuration resolution."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from community_assistant import config


class TestRequireEnv:
    def test_returns_environment_value(self, monkeypatch):
        monkeypatch.setenv("COMMUNITY_TEST_SECRET", "s3cret")
        assert config._require_env("COMMUNITY_TEST_SECRET") == "s3cret"

    def test_missing_value_raises_with_variable_name(self, monkeypatch):
        monkeypatch.delenv("COMMUNITY_TEST_SECRET", raising=False)
        with pytest.raises(OSError, match="COMMUNITY_TEST_SECRET"):
            config._require_env("COMMUNITY_TEST_SECRET")

    def test_placeholder_value_is_treated_as_missing(self, monkeypatch):
        monkeypatch.setenv("COMMUNITY_TEST_SECRET", "your_openai_key_here")
        with pytest.raises(OSError):
            config._require_env("COMMUNITY_TEST_SECRET")

    def test_falls_back_to_ssm_on_aws(self, monkeypatch):
        monkeypatch.delenv("COMMUNITY_TEST_SECRET", raising=False)
        with patch.object(config, "_ON_AWS", True), \
                patch.object(config, "_get_ssm_parameter", return_value="from-ssm") as ssm:
            assert config._require_env("COMMUNITY_TEST_SECRET") == "from-ssm"
        ssm.assert_called_once_with("COMMUNITY_TEST_SECRET")


class TestDefaults:
    def test_loop_bound_is_positive(self):
        assert config.MAX_TOOL_ROUNDS > 0

    def test_graphql_url_comes_from_environment(self):
        assert config.GRAPHQL_URL == os.environ["GRAPHQL_URL"]
