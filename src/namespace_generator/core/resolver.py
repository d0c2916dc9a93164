"""Namespace resolution for generate requests.

This module provides the NamespaceResolver class which decides between the
local and remote cluster, runs the listing path, and projects the result
into the plugin response.
"""

from collections.abc import Callable, Iterable
from typing import Any, Protocol

from icecream import ic

from namespace_generator import console
from namespace_generator.exceptions import NamespaceGeneratorError
from namespace_generator.label_selector import Selector, translate_selector
from namespace_generator.models import GenerateRequest, GenerateResponse, OutParameters, Output, RemoteClientConfig
from namespace_generator.remote.client import RemoteCluster, build_remote_client
from namespace_generator.remote.credentials import CredentialResolver
from namespace_generator.remote.decoding import decode_cluster_secret

# Namespace holding the Argo CD cluster secrets
ARGOCD_NAMESPACE = "argocd"


class NamespaceReader(Protocol):
    """Read access to the local cluster."""

    def list_namespaces(self, selector: Selector, *, timeout: float | None = None) -> list[Any]: ...

    def read_secret(self, namespace: str, name: str, *, timeout: float | None = None) -> dict[str, bytes]: ...


def to_response(namespaces: Iterable[Any]) -> GenerateResponse:
    """Project namespace objects into a plugin response.

    Order is preserved; nothing is sorted or deduplicated.

    Args:
        namespaces: Namespace objects exposing ``metadata.name``.

    Returns:
        The response with one parameter set per namespace.

    """
    return GenerateResponse(
        output=Output(parameters=[OutParameters(namespace=ns.metadata.name) for ns in namespaces])
    )


class NamespaceResolver:
    """Resolves the namespaces a generate request asks for.

    Holds only immutable collaborators, so one instance serves concurrent
    requests. Remote clients and tokens are created per request.

    Attributes:
        local_cluster: Pre-authenticated reader for the local cluster.
        credential_resolver: Decides on and fetches remote bearer tokens.
        client_builder: Builds a RemoteCluster from connection material.
        control_namespace: Namespace holding the cluster secrets.
        timeout: Timeout in seconds for every Kubernetes call.

    """

    def __init__(
        self,
        local_cluster: NamespaceReader,
        credential_resolver: CredentialResolver | None = None,
        *,
        client_builder: Callable[[RemoteClientConfig], RemoteCluster] = build_remote_client,
        control_namespace: str = ARGOCD_NAMESPACE,
        timeout: float | None = None,
    ) -> None:
        self.local_cluster: NamespaceReader = local_cluster
        self.credential_resolver: CredentialResolver = credential_resolver or CredentialResolver()
        self.client_builder: Callable[[RemoteClientConfig], RemoteCluster] = client_builder
        self.control_namespace: str = control_namespace
        self.timeout: float | None = timeout

    def resolve(self, request: GenerateRequest) -> GenerateResponse:
        """Resolve the namespaces matching the request.

        Args:
            request: The decoded generate request.

        Returns:
            The plugin response listing every matched namespace.

        Raises:
            ValidationError: If the label selector is invalid.
            NamespaceGeneratorError: If any later step fails. No partial
                result is returned.

        """
        parameters = request.input.parameters
        selector = translate_selector(parameters.label_selector)
        cluster_name = parameters.cluster_name

        if not cluster_name:
            console.step("No cluster name in request, listing local namespaces")
            namespaces = self._list_local(selector)
        else:
            console.step(f"Listing namespaces on cluster {console.highlight(cluster_name)}")
            namespaces = self._list_remote(cluster_name, selector)

        response = to_response(namespaces)
        console.success(
            f"Matched {len(response.output.parameters)} namespace(s) on "
            f"{console.highlight(cluster_name) if cluster_name else 'the local cluster'}"
        )
        ic(cluster_name, response)
        return response

    def _list_local(self, selector: Selector) -> list[Any]:
        try:
            return self.local_cluster.list_namespaces(selector, timeout=self.timeout)
        except NamespaceGeneratorError as e:
            console.error(f"Failed to list local namespaces: {console.plain(e)}")
            raise

    def _list_remote(self, cluster_name: str, selector: Selector) -> list[Any]:
        """Run the remote path: secret, decode, token, client, list.

        Each step depends on the previous one; the first failure is logged
        with the cluster name and step, then re-raised.
        """
        step = "read secret"
        try:
            data = self.local_cluster.read_secret(self.control_namespace, cluster_name, timeout=self.timeout)
            console.step(f"Found secret {console.highlight(cluster_name)}")

            step = "decode secret"
            decoded = decode_cluster_secret(data, cluster_name)

            token: str | None = None
            if self.credential_resolver.requires_token(decoded.config):
                step = "resolve credentials"
                token = self.credential_resolver.resolve()

            step = "build client"
            remote_cluster = self.client_builder(
                RemoteClientConfig(
                    endpoint=decoded.endpoint,
                    ca_bytes=decoded.ca_bytes,
                    insecure=decoded.config.tls_client_config.insecure,
                    bearer_token=token,
                )
            )

            step = "list namespaces"
            with remote_cluster:
                return remote_cluster.list_namespaces(selector, timeout=self.timeout)
        except NamespaceGeneratorError as e:
            console.error(f"Cluster {console.highlight(cluster_name)}: failed to {step}: {console.plain(e)}")
            raise

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return (
            f"NamespaceResolver(local_cluster={self.local_cluster!r}, "
            f"credential_resolver={self.credential_resolver!r}, "
            f"control_namespace={self.control_namespace!r})"
        )
