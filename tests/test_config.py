"""Tests for configuration loading and the .env helpers."""

from __future__ import annotations

import pytest

from paycoinpro.core.config import (
    ClientConfig,
    ClientParameters,
    ConfigError,
    DEFAULT_BASE_URL,
    load_client_config,
)
from paycoinpro.core.environment import build_environment, load_env_file


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig(api_key="pk_test_123")

        assert config.base_url == DEFAULT_BASE_URL
        assert config.timeout == 30.0
        assert config.max_retries == 2
        assert config.debug is False
        assert config.default_headers == {}

    def test_api_key_is_stripped_and_required(self):
        assert ClientConfig(api_key="  pk_1  ").api_key == "pk_1"
        with pytest.raises(ConfigError):
            ClientConfig(api_key="   ")

    def test_base_url_trailing_slash_is_dropped(self):
        assert ClientConfig(api_key="pk", base_url="https://x.test/api/").base_url == "https://x.test/api"

    def test_base_url_must_be_http(self):
        with pytest.raises(ConfigError):
            ClientConfig(api_key="pk", base_url="ftp://x.test")

    @pytest.mark.parametrize("field, value", [("timeout", 0), ("max_retries", -1)])
    def test_invalid_budgets(self, field, value):
        with pytest.raises(ConfigError):
            ClientConfig(api_key="pk", **{field: value})

    def test_repr_hides_credential(self):
        assert "pk_secret" not in repr(ClientConfig(api_key="pk_secret"))

    def test_is_immutable(self):
        config = ClientConfig(api_key="pk")

        with pytest.raises(AttributeError):
            config.api_key = "other"

    def test_default_headers_are_read_only(self):
        headers = {"X-Team": "payments"}
        config = ClientConfig(api_key="pk", default_headers=headers)
        headers["X-Team"] = "billing"

        assert config.default_headers == {"X-Team": "payments"}
        with pytest.raises(TypeError):
            config.default_headers["X-Team"] = "billing"


class TestLoadClientConfig:
    def test_from_mapping(self):
        config = ClientConfig.from_mapping(
            {
                "PAYCOINPRO_API_KEY": "pk_env",
                "PAYCOINPRO_BASE_URL": "https://sandbox.paycoinpro.com/api/v1",
                "PAYCOINPRO_TIMEOUT_SECONDS": "12.5",
                "PAYCOINPRO_MAX_RETRIES": "4",
                "PAYCOINPRO_DEBUG": "yes",
                "PAYCOINPRO_DEFAULT_HEADERS": '{"X-Team": "payments"}',
                "PAYCOINPRO_WEBHOOK_SECRET": "whsec_1",
            }
        )

        assert config.api_key == "pk_env"
        assert config.base_url == "https://sandbox.paycoinpro.com/api/v1"
        assert config.timeout == 12.5
        assert config.max_retries == 4
        assert config.debug is True
        assert config.default_headers == {"X-Team": "payments"}
        assert config.webhook_secret == "whsec_1"

    def test_missing_key_is_config_error(self):
        with pytest.raises(ConfigError, match="API key is required"):
            load_client_config(env_file=None, base={})

    @pytest.mark.parametrize(
        "key, value",
        [
            ("PAYCOINPRO_TIMEOUT_SECONDS", "soon"),
            ("PAYCOINPRO_MAX_RETRIES", "two"),
            ("PAYCOINPRO_MAX_RETRIES", "-1"),
            ("PAYCOINPRO_DEBUG", "maybe"),
            ("PAYCOINPRO_DEFAULT_HEADERS", "[1, 2]"),
        ],
    )
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigError):
            load_client_config(env_file=None, base={"PAYCOINPRO_API_KEY": "pk", key: value})

    def test_keyword_arguments_win(self):
        config = load_client_config(
            env_file=None,
            base={"PAYCOINPRO_API_KEY": "pk_env", "PAYCOINPRO_MAX_RETRIES": "1"},
            api_key="pk_kwarg",
            max_retries=5,
            debug=True,
        )

        assert config.api_key == "pk_kwarg"
        assert config.max_retries == 5
        assert config.debug is True

    def test_parameters_bundle(self):
        config = load_client_config(
            env_file=None,
            base={},
            parameters=ClientParameters(api_key="pk_bundle", timeout=3, default_headers={"X-A": "1"}),
        )

        assert config.api_key == "pk_bundle"
        assert config.timeout == 3.0
        assert config.default_headers == {"X-A": "1"}

    def test_env_file_fills_missing_keys_only(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "export PAYCOINPRO_API_KEY='pk_file'\n"
            'PAYCOINPRO_MAX_RETRIES="3"\n'
            "PAYCOINPRO_TIMEOUT_SECONDS=9\n"
        )

        config = load_client_config(
            env_file=str(env_file),
            base={"PAYCOINPRO_TIMEOUT_SECONDS": "4"},
        )

        assert config.api_key == "pk_file"
        assert config.max_retries == 3
        assert config.timeout == 4.0


class TestEnvironment:
    def test_missing_env_file_is_ignored(self, tmp_path):
        environment = build_environment(env_file=str(tmp_path / "missing.env"), base={"A": "1"})

        assert environment.get("A") == "1"

    def test_overrides_always_win(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("A=file\n")

        environment = build_environment(env_file=str(env_file), base={}, overrides={"A": "override"})

        assert environment.get("A") == "override"

    def test_client_variables_filters_prefix(self):
        environment = build_environment(
            env_file=None,
            base={"PAYCOINPRO_API_KEY": "pk", "HOME": "/root"},
        )

        assert environment.client_variables() == {"PAYCOINPRO_API_KEY": "pk"}

    def test_load_env_file_preserves_existing(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("A=file\nB=file\n")
        environ = {"A": "existing"}

        merged = load_env_file(str(env_file), environ=environ)

        assert merged == {"A": "existing", "B": "file"}
        assert environ["B"] == "file"

    def test_env_file_syntax(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# leading comment\n"
            "\n"
            "export A=1\n"
            "B = two words  # trailing comment\n"
            "C='quoted # not a comment'\n"
            'D={"X-Team": "payments"}\n'
            "not an assignment\n"
        )

        environment = build_environment(env_file=str(env_file), base={})

        assert environment.variables == {
            "A": "1",
            "B": "two words",
            "C": "quoted # not a comment",
            "D": '{"X-Team": "payments"}',
        }

    def test_process_environment_beats_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("A=file\nB=file\n")

        environment = build_environment(env_file=str(env_file), base={"A": "process"})

        assert environment.get("A") == "process"
        assert environment.get("B") == "file"
