"""
Configuration objects and helpers for the PayCoinPro client.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from .environment import build_environment

__all__ = [
    "ClientConfig",
    "ClientParameters",
    "ConfigError",
    "DEFAULT_BASE_URL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_TIMEOUT_SECONDS",
    "load_client_config",
]

DEFAULT_BASE_URL = "https://paycoinpro.com/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 2

_PARAMETER_TO_ENV_KEY = {
    "api_key": "PAYCOINPRO_API_KEY",
    "base_url": "PAYCOINPRO_BASE_URL",
    "timeout": "PAYCOINPRO_TIMEOUT_SECONDS",
    "max_retries": "PAYCOINPRO_MAX_RETRIES",
    "debug": "PAYCOINPRO_DEBUG",
    "webhook_secret": "PAYCOINPRO_WEBHOOK_SECRET",
    "default_headers": "PAYCOINPRO_DEFAULT_HEADERS",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        return json.dumps(dict(value))
    return str(value)


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


@dataclass(frozen=True)
class ClientParameters:
    """
    Explicit parameter bundle for constructing :class:`ClientConfig`.

    Callers can either instantiate this helper or pass the individual keyword
    arguments directly to :func:`load_client_config`.
    """

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: Optional[float | int | str] = None
    max_retries: Optional[int | str] = None
    debug: Optional[bool | str] = None
    webhook_secret: Optional[str] = None
    default_headers: Optional[Mapping[str, str]] = None

    def as_overrides(self) -> Dict[str, str]:
        overrides: Dict[str, str] = {}
        for field_name, env_key in _PARAMETER_TO_ENV_KEY.items():
            value = getattr(self, field_name)
            if value is None:
                continue
            overrides[env_key] = _stringify(value)
        return overrides


def _collect_parameter_overrides(
    parameters: Optional[ClientParameters],
    explicit: Mapping[str, Any],
) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    if parameters is not None:
        overrides.update(parameters.as_overrides())

    for key, value in explicit.items():
        if value is None:
            continue
        try:
            env_key = _PARAMETER_TO_ENV_KEY[key]
        except KeyError as exc:
            raise TypeError(f"Unknown client parameter '{key}'") from exc
        overrides[env_key] = _stringify(value)
    return overrides


def _normalize_api_key(raw_key: Optional[str]) -> str:
    key = (raw_key or "").strip()
    if not key:
        raise ConfigError("API key is required (PAYCOINPRO_API_KEY)")
    return key


def _normalize_base_url(raw_url: str) -> str:
    value = raw_url.strip().rstrip("/")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"PAYCOINPRO_BASE_URL must be an http(s) URL, got '{raw_url}'")
    return value


def _parse_timeout(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(
            f"PAYCOINPRO_TIMEOUT_SECONDS must be a number, got '{raw}'"
        ) from exc
    if value <= 0:
        raise ConfigError("PAYCOINPRO_TIMEOUT_SECONDS must be greater than zero")
    return value


def _parse_max_retries(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(
            f"PAYCOINPRO_MAX_RETRIES must be an integer, got '{raw}'"
        ) from exc
    if value < 0:
        raise ConfigError("PAYCOINPRO_MAX_RETRIES must not be negative")
    return value


def _parse_bool(raw: str, field_name: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{field_name} must be a boolean, got '{raw}'")


def _parse_headers(raw: str) -> Dict[str, str]:
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError("PAYCOINPRO_DEFAULT_HEADERS must be a JSON object") from exc
    if not isinstance(parsed, dict):
        raise ConfigError("PAYCOINPRO_DEFAULT_HEADERS must be a JSON object")
    return {str(key): str(value) for key, value in parsed.items()}


@dataclass(frozen=True)
class ClientConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    debug: bool = False
    default_headers: Mapping[str, str] = field(default_factory=dict)
    webhook_secret: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "api_key", _normalize_api_key(self.api_key))
        object.__setattr__(self, "base_url", _normalize_base_url(self.base_url))
        if self.timeout <= 0:
            raise ConfigError("timeout must be greater than zero")
        if self.max_retries < 0:
            raise ConfigError("max_retries must not be negative")
        object.__setattr__(
            self, "default_headers", MappingProxyType(dict(self.default_headers))
        )

    def __repr__(self) -> str:
        # Keeps the credential out of logs and tracebacks.
        return (
            f"ClientConfig(api_key='***', base_url={self.base_url!r}, "
            f"timeout={self.timeout!r}, max_retries={self.max_retries!r}, "
            f"debug={self.debug!r})"
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ClientConfig":
        api_key = _normalize_api_key(values.get("PAYCOINPRO_API_KEY"))
        base_url = _normalize_base_url(values.get("PAYCOINPRO_BASE_URL", DEFAULT_BASE_URL))

        timeout = _parse_timeout(
            values.get("PAYCOINPRO_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
        )
        max_retries = _parse_max_retries(
            values.get("PAYCOINPRO_MAX_RETRIES", str(DEFAULT_MAX_RETRIES))
        )
        debug = _parse_bool(values.get("PAYCOINPRO_DEBUG", "false"), "PAYCOINPRO_DEBUG")
        default_headers = _parse_headers(values.get("PAYCOINPRO_DEFAULT_HEADERS", ""))
        webhook_secret = values.get("PAYCOINPRO_WEBHOOK_SECRET") or None

        return cls(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            debug=debug,
            default_headers=default_headers,
            webhook_secret=webhook_secret,
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[ClientParameters] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float | int | str] = None,
        max_retries: Optional[int | str] = None,
        debug: Optional[bool | str] = None,
        webhook_secret: Optional[str] = None,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        parameter_overrides = _collect_parameter_overrides(
            parameters,
            {
                "api_key": api_key,
                "base_url": base_url,
                "timeout": timeout,
                "max_retries": max_retries,
                "debug": debug,
                "webhook_secret": webhook_secret,
                "default_headers": default_headers,
            },
        )
        merged_overrides = dict(overrides or {})
        merged_overrides.update(parameter_overrides)

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_client_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float | int | str] = None,
    max_retries: Optional[int | str] = None,
    debug: Optional[bool | str] = None,
    webhook_secret: Optional[str] = None,
    default_headers: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """
    Convenience wrapper that mirrors :meth:`ClientConfig.from_env`.

    The configuration can be provided entirely through environment variables,
    a ``.env`` file, direct keyword arguments, or any combination of the three.
    """
    return ClientConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=max_retries,
        debug=debug,
        webhook_secret=webhook_secret,
        default_headers=default_headers,
    )
