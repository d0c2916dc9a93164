"""Tests for core/resolver.py module."""

from unittest.mock import MagicMock, patch

import pytest
from conftest import REMOTE_SERVER, FakeCluster, make_config, make_namespace

from namespace_generator.core.resolver import ARGOCD_NAMESPACE, NamespaceResolver, to_response
from namespace_generator.exceptions import (
    ClientConstructionError,
    CredentialResolutionError,
    ListError,
    MalformedConfigError,
    MissingFieldError,
    SecretNotFoundError,
    ValidationError,
)
from namespace_generator.models import CredentialMode, GenerateRequest
from namespace_generator.remote.credentials import CredentialResolver


def make_request(cluster_name="", match_labels=None, match_expressions=None):
    """Build a GenerateRequest from the wire representation."""
    label_selector = {}
    if match_labels is not None:
        label_selector["matchLabels"] = match_labels
    if match_expressions is not None:
        label_selector["matchExpressions"] = match_expressions
    return GenerateRequest.model_validate(
        {"input": {"parameters": {"clusterName": cluster_name, "labelSelector": label_selector}}}
    )


def names(response):
    """Return the namespace names of a response."""
    return [parameter.namespace for parameter in response.output.parameters]


class TestToResponse:
    """Tests for projecting namespaces into the response."""

    def test_preserves_order_and_duplicates(self):
        """Test projection neither sorts nor deduplicates."""
        response = to_response([make_namespace("z"), make_namespace("a"), make_namespace("z")])

        assert names(response) == ["z", "a", "z"]

    def test_empty(self):
        """Test an empty result serialises as an empty list."""
        assert to_response([]).model_dump() == {"output": {"parameters": []}}


class TestLocalPath:
    """Tests for requests without a cluster name."""

    def test_matches_local_namespaces(self, fake_cluster):
        """Test selecting local namespaces by label."""
        resolver = NamespaceResolver(fake_cluster)

        response = resolver.resolve(make_request(match_labels={"team": "a"}))

        assert response.model_dump() == {"output": {"parameters": [{"namespace": "a1"}]}}
        assert fake_cluster.list_calls == [("team=a", None)]

    def test_never_touches_secrets_or_credentials(self, fake_cluster, client_builder):
        """Test the local path skips secrets, credentials and remote clients."""
        credential_resolver = MagicMock()
        resolver = NamespaceResolver(fake_cluster, credential_resolver, client_builder=client_builder)

        resolver.resolve(make_request())

        assert fake_cluster.secret_calls == []
        credential_resolver.requires_token.assert_not_called()
        credential_resolver.resolve.assert_not_called()
        client_builder.assert_not_called()

    def test_logs_match_count(self, fake_cluster):
        """Test a successful resolution is logged with the match count."""
        with patch("namespace_generator.console.success") as mock_success:
            NamespaceResolver(fake_cluster).resolve(make_request(match_labels={"team": "a"}))

        mock_success.assert_called_once()
        assert "Matched 1 namespace(s)" in mock_success.call_args[0][0]

    def test_timeout_is_forwarded(self, fake_cluster):
        """Test the configured timeout reaches the list call."""
        resolver = NamespaceResolver(fake_cluster, timeout=12.5)

        resolver.resolve(make_request())

        assert fake_cluster.list_calls == [("", 12.5)]

    def test_list_error(self):
        """Test local list failures propagate."""
        local_cluster = MagicMock()
        local_cluster.list_namespaces.side_effect = ListError("Failed to list namespaces: 500")

        with pytest.raises(ListError):
            NamespaceResolver(local_cluster).resolve(make_request())

    def test_invalid_selector_stops_before_listing(self, fake_cluster):
        """Test selector validation happens before any cluster access."""
        request = make_request(match_expressions=[{"key": "team", "operator": "Equals", "values": ["a"]}])

        with pytest.raises(ValidationError):
            NamespaceResolver(fake_cluster).resolve(request)

        assert fake_cluster.list_calls == []


class TestRemotePath:
    """Tests for requests naming a remote cluster."""

    def test_lists_remote_namespaces_in_order(self, fake_cluster, client_builder, remote_client, ca_pem):
        """Test the remote list result is returned in order."""
        resolver = NamespaceResolver(fake_cluster, client_builder=client_builder, timeout=4)

        response = resolver.resolve(make_request("remote1", match_labels={"team": "a"}))

        assert response.model_dump() == {"output": {"parameters": [{"namespace": "x"}, {"namespace": "y"}]}}
        assert fake_cluster.secret_calls == [(ARGOCD_NAMESPACE, "remote1")]
        assert fake_cluster.list_calls == []

        remote_config = client_builder.call_args[0][0]
        assert remote_config.endpoint == REMOTE_SERVER
        assert remote_config.ca_bytes == ca_pem
        assert remote_config.bearer_token is None
        assert remote_config.insecure is False

        selector = remote_client.list_namespaces.call_args[0][0]
        assert selector.to_query() == "team=a"
        assert remote_client.list_namespaces.call_args.kwargs == {"timeout": 4}
        remote_client.__exit__.assert_called_once()

    def test_missing_secret(self, client_builder):
        """Test an absent secret fails without a partial response."""
        resolver = NamespaceResolver(FakeCluster(), client_builder=client_builder)

        with pytest.raises(SecretNotFoundError):
            resolver.resolve(make_request("remote2"))

        client_builder.assert_not_called()

    def test_malformed_config(self, fake_cluster, client_builder):
        """Test an invalid config document fails the request."""
        fake_cluster.secrets[(ARGOCD_NAMESPACE, "remote1")]["config"] = b"{not json"
        resolver = NamespaceResolver(fake_cluster, client_builder=client_builder)

        with pytest.raises(MalformedConfigError):
            resolver.resolve(make_request("remote1"))

        client_builder.assert_not_called()

    def test_missing_server_key(self, fake_cluster, client_builder):
        """Test a secret without a server key fails the request."""
        del fake_cluster.secrets[(ARGOCD_NAMESPACE, "remote1")]["server"]
        resolver = NamespaceResolver(fake_cluster, client_builder=client_builder)

        with pytest.raises(MissingFieldError):
            resolver.resolve(make_request("remote1"))

    def test_gcp_mode_adds_token(self, fake_cluster, client_builder, mock_google_auth):
        """Test a token is fetched and passed to the client in gcp mode."""
        resolver = NamespaceResolver(
            fake_cluster, CredentialResolver(CredentialMode.GCP), client_builder=client_builder
        )

        resolver.resolve(make_request("remote1"))

        mock_google_auth.assert_called_once()
        assert client_builder.call_args[0][0].bearer_token == "ya29.test-token"

    def test_exec_mode_uses_exec_block(self, fake_cluster, client_builder, mock_google_auth, ca_pem):
        """Test the exec mode fetches a token only for exec-provider secrets."""
        resolver = NamespaceResolver(
            fake_cluster, CredentialResolver(CredentialMode.EXEC), client_builder=client_builder
        )

        resolver.resolve(make_request("remote1"))
        mock_google_auth.assert_not_called()

        fake_cluster.secrets[(ARGOCD_NAMESPACE, "remote1")]["config"] = make_config(
            ca_pem, exec_provider={"command": "argocd-k8s-auth", "args": ["gcp"]}
        )
        resolver.resolve(make_request("remote1"))
        mock_google_auth.assert_called_once()

    def test_credential_failure(self, fake_cluster, client_builder):
        """Test credential failures stop before building a client."""
        credential_resolver = MagicMock()
        credential_resolver.requires_token.return_value = True
        credential_resolver.resolve.side_effect = CredentialResolutionError("no credentials")
        resolver = NamespaceResolver(fake_cluster, credential_resolver, client_builder=client_builder)

        with pytest.raises(CredentialResolutionError):
            resolver.resolve(make_request("remote1"))

        credential_resolver.resolve.assert_called_once()
        client_builder.assert_not_called()

    def test_client_construction_failure(self, fake_cluster, client_builder):
        """Test client construction failures propagate."""
        client_builder.side_effect = ClientConstructionError("Invalid cluster endpoint")
        resolver = NamespaceResolver(fake_cluster, client_builder=client_builder)

        with pytest.raises(ClientConstructionError):
            resolver.resolve(make_request("remote1"))

    def test_remote_list_failure_closes_client(self, fake_cluster, client_builder, remote_client):
        """Test the remote client is released when listing fails."""
        remote_client.list_namespaces.side_effect = ListError("Failed to connect")
        resolver = NamespaceResolver(fake_cluster, client_builder=client_builder)

        with pytest.raises(ListError):
            resolver.resolve(make_request("remote1"))

        remote_client.__exit__.assert_called_once()

    def test_fresh_client_per_request(self, fake_cluster, client_builder):
        """Test no remote client is reused between requests."""
        resolver = NamespaceResolver(fake_cluster, client_builder=client_builder)

        resolver.resolve(make_request("remote1"))
        resolver.resolve(make_request("remote1"))

        assert client_builder.call_count == 2
        assert fake_cluster.secret_calls == [(ARGOCD_NAMESPACE, "remote1")] * 2

    def test_custom_control_namespace(self, remote_secret_data, client_builder):
        """Test the control namespace can be overridden."""
        cluster = FakeCluster(secrets={("gitops", "remote1"): remote_secret_data})
        resolver = NamespaceResolver(cluster, client_builder=client_builder, control_namespace="gitops")

        assert [p.namespace for p in resolver.resolve(make_request("remote1")).output.parameters] == ["x", "y"]
