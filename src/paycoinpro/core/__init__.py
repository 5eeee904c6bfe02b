"""
Core primitives: configuration, request execution and webhook verification.
"""

from .cancellation import CancellationToken, RequestAborted, TimeoutSource
from .client import PayCoinProClient
from .config import (
    ClientConfig,
    ClientParameters,
    ConfigError,
    load_client_config,
)
from .environment import ClientEnvironment, build_environment, load_env_file
from .errors import (
    ClassifiedError,
    ErrorKind,
    PayCoinProError,
    WebhookVerificationError,
)
from .executor import RequestExecutor, RequestSpec, build_url, compute_backoff
from .resources import RequestOptions
from .transport import RequestsTransport, Transport, TransportResponse
from .webhooks import (
    SignatureScheme,
    VerificationContext,
    WebhookEvent,
    WebhookVerifier,
    get_signature_from_headers,
    secure_compare,
)

__all__ = [
    "CancellationToken",
    "ClassifiedError",
    "ClientConfig",
    "ClientEnvironment",
    "ClientParameters",
    "ConfigError",
    "ErrorKind",
    "PayCoinProClient",
    "PayCoinProError",
    "RequestAborted",
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
    "build_url",
    "compute_backoff",
    "get_signature_from_headers",
    "load_client_config",
    "load_env_file",
    "secure_compare",
]
