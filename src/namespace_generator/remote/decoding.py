"""Remote cluster secret decoding.

This module extracts the API server endpoint and TLS material from the
Argo CD cluster secret data. It performs no I/O.
"""

import base64
import binascii
from collections.abc import Mapping

import pydantic

from namespace_generator.exceptions import InvalidEncodingError, MalformedConfigError, MissingFieldError
from namespace_generator.models import ClusterConnectionConfig, DecodedClusterSecret

SERVER_KEY = "server"
CONFIG_KEY = "config"


def parse_connection_config(raw: bytes, cluster_name: str = "") -> ClusterConnectionConfig:
    """Parse the JSON connection document stored under the ``config`` key.

    Args:
        raw: The UTF-8 JSON bytes.
        cluster_name: Cluster name used in error messages.

    Returns:
        The parsed connection document. Unknown fields are ignored.

    Raises:
        MalformedConfigError: If the bytes are not a JSON object of the expected shape.

    """
    try:
        return ClusterConnectionConfig.model_validate_json(raw)
    except pydantic.ValidationError as err:
        raise MalformedConfigError(f"secret {cluster_name!r} has a malformed 'config' document: {err}") from err


def decode_ca_data(ca_data: str, cluster_name: str = "") -> bytes:
    """Decode the base64 ``caData`` string into raw trust-anchor bytes.

    Args:
        ca_data: The base64-encoded certificate data. Empty decodes to empty bytes.
        cluster_name: Cluster name used in error messages.

    Returns:
        The decoded bytes. No certificate validation is performed.

    Raises:
        InvalidEncodingError: If the string is not valid base64.

    """
    try:
        return base64.b64decode(ca_data, validate=True)
    except (binascii.Error, ValueError) as err:
        raise InvalidEncodingError(f"secret {cluster_name!r} has invalid base64 'caData': {err}") from err


def decode_cluster_secret(data: Mapping[str, bytes], cluster_name: str = "") -> DecodedClusterSecret:
    """Extract connection material from a remote cluster secret.

    Args:
        data: The secret data, key to raw bytes.
        cluster_name: Cluster name used in error messages.

    Returns:
        DecodedClusterSecret with endpoint, decoded CA bytes and parsed config.

    Raises:
        MissingFieldError: If ``server`` or ``config`` is absent.
        MalformedConfigError: If ``config`` is not a valid connection document.
        InvalidEncodingError: If ``server`` is not UTF-8 or ``caData`` is not base64.

    """
    if SERVER_KEY not in data:
        raise MissingFieldError(SERVER_KEY, cluster_name)
    if CONFIG_KEY not in data:
        raise MissingFieldError(CONFIG_KEY, cluster_name)

    try:
        endpoint = data[SERVER_KEY].decode("utf-8").strip()
    except UnicodeDecodeError as err:
        raise InvalidEncodingError(f"secret {cluster_name!r} has a non UTF-8 'server' value") from err

    config = parse_connection_config(data[CONFIG_KEY], cluster_name)
    ca_bytes = decode_ca_data(config.tls_client_config.ca_data, cluster_name)

    return DecodedClusterSecret(endpoint=endpoint, ca_bytes=ca_bytes, config=config)
