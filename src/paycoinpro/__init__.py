"""
Public facade for the PayCoinPro client package.

The most useful pieces are re-exported here so integrators can
``from paycoinpro import ...`` without navigating the package.
"""

__version__ = "1.0.0"

from .api import construct_event, create_client
from .core import (
    CancellationToken,
    ClassifiedError,
    ClientConfig,
    ClientEnvironment,
    ClientParameters,
    ConfigError,
    ErrorKind,
    PayCoinProClient,
    PayCoinProError,
    RequestExecutor,
    RequestOptions,
    RequestSpec,
    RequestsTransport,
    SignatureScheme,
    TimeoutSource,
    Transport,
    TransportResponse,
    VerificationContext,
    WebhookEvent,
    WebhookVerificationError,
    WebhookVerifier,
    build_environment,
    get_signature_from_headers,
    load_client_config,
    load_env_file,
)

__all__ = (
    "__version__",
    "CancellationToken",
    "ClassifiedError",
    "ClientConfig",
    "ClientEnvironment",
    "ClientParameters",
    "ConfigError",
    "ErrorKind",
    "PayCoinProClient",
    "PayCoinProError",
    "RequestExecutor",
    "RequestOptions",
    "RequestSpec",
    "RequestsTransport",
    "SignatureScheme",
    "TimeoutSource",
    "Transport",
    "TransportResponse",
    "VerificationContext",
    "WebhookEvent",
    "WebhookVerificationError",
    "WebhookVerifier",
    "build_environment",
    "construct_event",
    "create_client",
    "get_signature_from_headers",
    "load_client_config",
    "load_env_file",
)
