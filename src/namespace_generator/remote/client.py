"""Ephemeral remote Kubernetes API clients.

This module provides the RemoteCluster class, a single-use API client for
a cluster registered in Argo CD, and the builder that assembles it from
an endpoint, a CA bundle and an optional bearer token.
"""

import contextlib
import ssl
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any
from urllib.parse import urlsplit

from icecream import ic
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from namespace_generator import console
from namespace_generator.exceptions import ClientConstructionError, ListError
from namespace_generator.label_selector import Selector
from namespace_generator.models import RemoteClientConfig


def _validate_endpoint(endpoint: str) -> str:
    """Check that the endpoint is an absolute http(s) URL.

    Args:
        endpoint: The API server URL from the cluster secret.

    Returns:
        The endpoint without a trailing slash.

    Raises:
        ClientConstructionError: If the URL has no http(s) scheme or no host.

    """
    try:
        parts = urlsplit(endpoint)
        _ = parts.port
    except ValueError as err:
        raise ClientConstructionError(f"Invalid cluster endpoint {endpoint!r}: {err}") from err
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ClientConstructionError(f"Invalid cluster endpoint {endpoint!r}: expected an absolute http(s) URL")
    return endpoint.rstrip("/")


def _ca_to_pem(ca_bytes: bytes) -> bytes:
    """Return the CA bytes as PEM that loads as a trust store.

    PEM text is used as is; a DER certificate is converted, since the
    client only loads CA files in PEM form.

    Raises:
        ClientConstructionError: If the data cannot be loaded.

    """
    try:
        if b"-----BEGIN" in ca_bytes:
            pem = ca_bytes.decode("ascii")
        else:
            pem = ssl.DER_cert_to_PEM_cert(ca_bytes)
        ssl.create_default_context(cadata=pem)
    except (ssl.SSLError, ValueError) as err:
        raise ClientConstructionError(f"Invalid CA data: {err}") from err
    return pem.encode("ascii")


class RemoteCluster:
    """Single-use API client for a remote cluster.

    Use as a context manager; leaving the block closes the connection pool
    and removes the temporary CA file.

    Attributes:
        endpoint: The API server URL.
        api_client: The underlying Kubernetes ApiClient.

    """

    def __init__(self, endpoint: str, api_client: client.ApiClient, ca_file: Path | None = None) -> None:
        self.endpoint: str = endpoint
        self.api_client: client.ApiClient = api_client
        self._ca_file: Path | None = ca_file

    def __enter__(self) -> "RemoteCluster":
        """Enter context manager.

        Returns:
            The RemoteCluster instance.

        """
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager and release resources."""
        self.close()

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"RemoteCluster(endpoint={self.endpoint!r})"

    def close(self) -> None:
        """Close the API client and remove the CA file."""
        with contextlib.suppress(OSError):
            self.api_client.close()
        if self._ca_file is not None:
            with contextlib.suppress(OSError):
                self._ca_file.unlink(missing_ok=True)
            self._ca_file = None

    def list_namespaces(self, selector: Selector, *, timeout: float | None = None) -> list[Any]:
        """List namespaces on the remote cluster.

        Args:
            selector: The label selector to filter by, applied server-side.
            timeout: Request timeout in seconds.

        Returns:
            The namespace objects in the order the API server returned them.

        Raises:
            ListError: If the API call fails.

        """
        core_v1_api = client.CoreV1Api(self.api_client)
        try:
            return list(
                core_v1_api.list_namespace(label_selector=selector.to_query(), _request_timeout=timeout).items
            )
        except ApiException as e:
            raise ListError(f"Failed to list namespaces on {self.endpoint}: {e.status} {e.reason}") from e
        except (HTTPError, OSError) as e:
            raise ListError(f"Failed to connect to {self.endpoint}: {e}") from e


def build_remote_client(remote_config: RemoteClientConfig) -> RemoteCluster:
    """Assemble a RemoteCluster from connection material.

    No connection is opened until the first API call.

    Args:
        remote_config: Endpoint, CA bytes, verification flag and optional token.

    Returns:
        A RemoteCluster that must be closed after use.

    Raises:
        ClientConstructionError: If the endpoint or CA data is invalid.

    """
    endpoint = _validate_endpoint(remote_config.endpoint)

    configuration = client.Configuration()
    configuration.host = endpoint
    configuration.verify_ssl = not remote_config.insecure

    ca_file: Path | None = None
    if remote_config.ca_bytes:
        ca_pem = _ca_to_pem(remote_config.ca_bytes)
        # The client reads CA material from a path
        try:
            with NamedTemporaryFile(prefix="remote-ca-", suffix=".crt", delete=False) as temp_file:
                temp_file.write(ca_pem)
        except OSError as err:
            raise ClientConstructionError(f"Failed to store CA data: {err}") from err
        ca_file = Path(temp_file.name)
        configuration.ssl_ca_cert = str(ca_file)

    if remote_config.bearer_token:
        configuration.api_key = {"authorization": remote_config.bearer_token}
        configuration.api_key_prefix = {"authorization": "Bearer"}

    try:
        api_client = client.ApiClient(configuration)
    except Exception:
        if ca_file is not None:
            ca_file.unlink(missing_ok=True)
        raise

    ic(remote_config)
    console.step(f"Built client for {console.highlight(endpoint)}")

    return RemoteCluster(endpoint=endpoint, api_client=api_client, ca_file=ca_file)
