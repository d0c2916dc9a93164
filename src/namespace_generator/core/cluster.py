"""Local Kubernetes cluster access.

This module provides the LocalCluster class, the pre-authenticated reader
for the cluster the service runs in. It lists namespaces and reads the
Argo CD cluster secrets that describe remote clusters.
"""

import base64
import binascii
from typing import Any

from icecream import ic
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from namespace_generator import console
from namespace_generator.exceptions import ClusterConnectionError, ListError, SecretNotFoundError
from namespace_generator.label_selector import Selector


class LocalCluster:
    """Reader for the cluster the service runs in.

    Configuration is loaded once; each call creates its own API object
    on top of the shared, pre-authenticated ApiClient.

    Attributes:
        context: The kubeconfig context in use, or None for in-cluster config.
        api_client: The authenticated Kubernetes ApiClient.

    """

    def __init__(self, *, context: str | None = None, api_client: client.ApiClient | None = None) -> None:
        """Initialize LocalCluster.

        Args:
            context: Kubeconfig context to use when running outside a cluster.
                     Must be passed as a keyword argument.
            api_client: An already configured ApiClient. When given, no
                        configuration is loaded.

        """
        self.context: str | None = context
        self.api_client: client.ApiClient = api_client or self._load_api_client(context=context)

    @staticmethod
    def _load_api_client(*, context: str | None) -> client.ApiClient:
        """Load in-cluster configuration, falling back to the kubeconfig.

        Args:
            context: Kubeconfig context for the fallback, None for the current one.

        Returns:
            An authenticated ApiClient.

        Raises:
            ClusterConnectionError: If neither configuration can be loaded.

        """
        configuration = client.Configuration()
        try:
            config.load_incluster_config(client_configuration=configuration)
            console.info("Using in-cluster service account configuration")
        except ConfigException as incluster_error:
            ic(incluster_error)
            try:
                config.load_kube_config(context=context, client_configuration=configuration)
            except ConfigException as e:
                raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
            console.info(f"Using kubeconfig context {console.highlight(context or 'current')}")
        return client.ApiClient(configuration)

    def list_namespaces(self, selector: Selector, *, timeout: float | None = None) -> list[Any]:
        """List namespaces matching a selector.

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
            raise ListError(f"Failed to list namespaces: {e.status} {e.reason}") from e
        except (HTTPError, OSError) as e:
            raise ListError(f"Failed to connect to the Kubernetes cluster: {e}") from e

    def read_secret(self, namespace: str, name: str, *, timeout: float | None = None) -> dict[str, bytes]:
        """Read a secret and return its decoded data.

        Args:
            namespace: Namespace holding the secret.
            name: Secret name.
            timeout: Request timeout in seconds.

        Returns:
            Mapping of data key to raw bytes.

        Raises:
            SecretNotFoundError: If the secret is missing, not readable, or the
                cluster cannot be reached.

        """
        core_v1_api = client.CoreV1Api(self.api_client)
        try:
            secret = core_v1_api.read_namespaced_secret(name=name, namespace=namespace, _request_timeout=timeout)
        except ApiException as e:
            match e.status:
                case 404:
                    reason = "not found"
                case 401 | 403:
                    reason = "access denied"
                case _:
                    reason = f"{e.status} {e.reason}"
            raise SecretNotFoundError(f"Failed to get secret {name} in namespace {namespace}: {reason}") from e
        except (HTTPError, OSError) as e:
            raise SecretNotFoundError(f"Failed to get secret {name} in namespace {namespace}: {e}") from e

        try:
            return {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}
        except (binascii.Error, ValueError) as e:
            raise SecretNotFoundError(f"Secret {name} in namespace {namespace} has undecodable data: {e}") from e

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"LocalCluster(context={self.context!r})"
