"""Remote cluster subpackage.

This package contains modules for decoding Argo CD cluster secrets,
resolving cloud credentials, and building ephemeral remote API clients.
"""

from namespace_generator.remote.client import RemoteCluster, build_remote_client
from namespace_generator.remote.credentials import GCP_SCOPES, CredentialResolver
from namespace_generator.remote.decoding import decode_ca_data, decode_cluster_secret, parse_connection_config

__all__ = [
    # client
    "RemoteCluster",
    "build_remote_client",
    # credentials
    "GCP_SCOPES",
    "CredentialResolver",
    # decoding
    "decode_cluster_secret",
    "parse_connection_config",
    "decode_ca_data",
]
