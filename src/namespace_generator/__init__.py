"""namespace-generator: Argo CD plugin generator for namespaces.

This package answers ApplicationSet plugin generator calls with the
namespaces matching a label selector, on the local cluster or on a remote
cluster registered as an Argo CD cluster secret.

Example usage:
    from namespace_generator import LocalCluster, NamespaceResolver, create_app

    resolver = NamespaceResolver(LocalCluster())
    app = create_app(resolver, token="s3cr3t")
"""

__version__ = "0.1.0"

from namespace_generator.core.cluster import LocalCluster
from namespace_generator.core.resolver import NamespaceResolver
from namespace_generator.exceptions import (
    ClientConstructionError,
    ClusterConnectionError,
    CredentialResolutionError,
    InvalidEncodingError,
    ListError,
    MalformedConfigError,
    MissingFieldError,
    NamespaceGeneratorError,
    SecretDecodingError,
    SecretNotFoundError,
    ValidationError,
)
from namespace_generator.server import create_app

__all__ = [
    # Version
    "__version__",
    # Classes
    "LocalCluster",
    "NamespaceResolver",
    # Application
    "create_app",
    # Exceptions
    "NamespaceGeneratorError",
    "ValidationError",
    "ClusterConnectionError",
    "SecretNotFoundError",
    "SecretDecodingError",
    "MissingFieldError",
    "MalformedConfigError",
    "InvalidEncodingError",
    "CredentialResolutionError",
    "ClientConstructionError",
    "ListError",
]
