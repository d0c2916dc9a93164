"""Custom exceptions for namespace-generator.

This module defines the exception hierarchy used throughout the application.
The HTTP layer maps ``ValidationError`` to a client error and every other
subclass of ``NamespaceGeneratorError`` to a server error.
"""


class NamespaceGeneratorError(Exception):
    """Base exception for all namespace-generator errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all namespace-generator errors with a single
    except clause if desired.
    """

    pass


class ValidationError(NamespaceGeneratorError):
    """Raised when a label selector is structurally invalid.

    This can occur when:
    - An operator is not one of In, NotIn, Exists, DoesNotExist
    - An operator is given values it does not accept, or lacks values it needs
    - A key or value is not a valid Kubernetes label key or value
    - Two requirements on the same key can never be satisfied together
    """

    pass


class ClusterConnectionError(NamespaceGeneratorError):
    """Raised when the local cluster configuration cannot be loaded.

    This can occur when:
    - The process runs outside a cluster and no kubeconfig is available
    - The requested kubeconfig context does not exist
    """

    pass


class SecretNotFoundError(NamespaceGeneratorError):
    """Raised when the remote cluster secret cannot be read.

    Covers a missing secret as well as a secret the service account
    is not allowed to read.
    """

    pass


class SecretDecodingError(NamespaceGeneratorError):
    """Base class for malformed remote cluster secret content."""

    pass


class MissingFieldError(SecretDecodingError):
    """Raised when a required key is absent from the cluster secret."""

    def __init__(self, field: str, cluster_name: str = "") -> None:
        self.field = field
        self.cluster_name = cluster_name
        location = f"secret {cluster_name!r}" if cluster_name else "secret"
        super().__init__(f"{location} missing {field!r} key")


class MalformedConfigError(SecretDecodingError):
    """Raised when the ``config`` key does not hold a valid connection document."""

    pass


class InvalidEncodingError(SecretDecodingError):
    """Raised when ``caData`` is not valid base64 or ``server`` is not UTF-8."""

    pass


class CredentialResolutionError(NamespaceGeneratorError):
    """Raised when no cloud access token can be obtained.

    This typically means:
    - No application default credentials are available in the environment
    - The token exchange with the identity provider failed
    """

    pass


class ClientConstructionError(NamespaceGeneratorError):
    """Raised when a remote API client cannot be assembled.

    This can occur when:
    - The endpoint is not an absolute http(s) URL
    - The CA data cannot be loaded as a trust store
    """

    pass


class ListError(NamespaceGeneratorError):
    """Raised when listing namespaces fails on the local or remote cluster."""

    pass
