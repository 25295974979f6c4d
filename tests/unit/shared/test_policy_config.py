"""Tests for environment-backed configuration."""

import pytest

from src.swrpg.shared.config import DEFAULT_REQUESTED_TOKENS, PolicyConfig, load_config


class TestLoadConfig:
    def test_defaults(self, monkeypatch) -> None:
        for name in (
            "JWT_SECRET",
            "JWT_ISSUER",
            "API_KEY",
            "API_KEY_ROLES",
            "DEFAULT_REQUESTED_TOKENS",
        ):
            monkeypatch.delenv(name, raising=False)

        config = load_config()

        assert config.jwt_secret is None
        assert config.api_key is None
        assert config.api_key_roles == ("user",)
        assert config.jwt_algorithm == "HS256"
        assert config.default_requested_tokens == DEFAULT_REQUESTED_TOKENS == 500

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("USERS_TABLE", "prod-swrpg-users")
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("JWT_SECRET", "s3cret")
        monkeypatch.setenv("JWT_LEEWAY_SECONDS", "5")
        monkeypatch.setenv("API_KEY", "k")
        monkeypatch.setenv("API_KEY_ROLES", " premium , user,,")
        monkeypatch.setenv("DEFAULT_REQUESTED_TOKENS", "250")

        config = load_config()

        assert config.users_table == "prod-swrpg-users"
        assert config.environment == "prod"
        assert config.jwt_secret == "s3cret"
        assert config.jwt_leeway_seconds == 5
        assert config.api_key_roles == ("premium", "user")
        assert config.default_requested_tokens == 250

    def test_empty_secret_disables(self, monkeypatch) -> None:
        monkeypatch.setenv("JWT_SECRET", "")
        assert load_config().jwt_secret is None

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            PolicyConfig().environment = "prod"  # type: ignore[misc]
