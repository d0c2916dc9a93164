"""Shared test fixtures for namespace-generator tests."""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest
from icecream import ic

from namespace_generator.label_selector import Selector

ic.disable()

# Self-signed test CA, CN=remote1-ca
CA_PEM = b"""-----BEGIN CERTIFICATE-----
MIIBgDCCASegAwIBAgIUB8JK1P+L/WXrK01dpaV+p9ONRvkwCgYIKoZIzj0EAwIw
FTETMBEGA1UEAwwKcmVtb3RlMS1jYTAgFw0yNjEwMTkwMDU1NThaGA8yMTI2MDky
NTAwNTU1OFowFTETMBEGA1UEAwwKcmVtb3RlMS1jYTBZMBMGByqGSM49AgEGCCqG
SM49AwEHA0IABHyg/SvanloGgfnhT4nalGkz30SWTazaGx3dm7bNguiS6vIumFt+
ZbKrSq+fc9N5ChuVHkKiqhUK0RjpsePsbI+jUzBRMB0GA1UdDgQWBBRY+xoxyNbo
icZFVHlWEo4HmsOQLTAfBgNVHSMEGDAWgBRY+xoxyNboicZFVHlWEo4HmsOQLTAP
BgNVHRMBAf8EBTADAQH/MAoGCCqGSM49BAMCA0cAMEQCIHLfJrLAzWIfrZyvnN1g
Bm/AkV8aSCLzjfsnm2qyNqvQAiBK8L02FtTWMpexx0r2rhksmIOlXFAy47wrfLlF
Zpf5JQ==
-----END CERTIFICATE-----
"""

REMOTE_SERVER = "https://remote1.example.com:6443"


def make_namespace(name, labels=None):
    """Build a namespace object shaped like kubernetes.client.V1Namespace."""
    ns = MagicMock()
    ns.metadata.name = name
    ns.metadata.labels = labels or {}
    return ns


def make_config(ca_pem=CA_PEM, *, insecure=False, exec_provider=None, **extra):
    """Build the JSON ``config`` document of an Argo CD cluster secret."""
    document = {"tlsClientConfig": {"insecure": insecure, "caData": base64.b64encode(ca_pem).decode()}}
    if exec_provider is not None:
        document["execProviderConfig"] = exec_provider
    document.update(extra)
    return json.dumps(document).encode()


class FakeCluster:
    """In-memory reader that applies selectors like the API server does."""

    def __init__(self, namespaces=None, secrets=None):
        self.namespaces = namespaces or []
        self.secrets = secrets or {}
        self.list_calls = []
        self.secret_calls = []

    def list_namespaces(self, selector: Selector, *, timeout=None):
        self.list_calls.append((selector.to_query(), timeout))
        return [ns for ns in self.namespaces if selector.matches(ns.metadata.labels)]

    def read_secret(self, namespace, name, *, timeout=None):
        from namespace_generator.exceptions import SecretNotFoundError

        self.secret_calls.append((namespace, name))
        try:
            return self.secrets[(namespace, name)]
        except KeyError:
            raise SecretNotFoundError(f"secret {name} not found in {namespace}") from None


@pytest.fixture
def ca_pem():
    """PEM bytes of the test CA."""
    return CA_PEM


@pytest.fixture
def remote_secret_data():
    """Data of a TLS-only Argo CD cluster secret for remote1."""
    return {"name": b"remote1", "server": REMOTE_SERVER.encode(), "config": make_config()}


@pytest.fixture
def local_namespaces():
    """Namespaces on the local cluster."""
    return [
        make_namespace("a1", {"team": "a"}),
        make_namespace("b1", {"team": "b"}),
    ]


@pytest.fixture
def fake_cluster(local_namespaces, remote_secret_data):
    """Local cluster holding two namespaces and the remote1 secret."""
    return FakeCluster(namespaces=local_namespaces, secrets={("argocd", "remote1"): remote_secret_data})


@pytest.fixture
def mock_core_v1_api():
    """Mock CoreV1Api for namespace listing and secret reads."""
    with patch("kubernetes.client.CoreV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        api_instance.list_namespace.return_value.items = [
            make_namespace(name) for name in ["default", "kube-system", "team-a"]
        ]
        yield api_instance


@pytest.fixture
def mock_google_auth():
    """Mock the application default credential chain."""
    with patch("google.auth.default") as mock:
        credentials = MagicMock()
        credentials.token = "ya29.test-token"
        mock.return_value = (credentials, "test-project")
        yield mock


@pytest.fixture
def remote_client():
    """A RemoteCluster stand-in returned by a mocked client builder."""
    remote = MagicMock()
    remote.__enter__ = MagicMock(return_value=remote)
    remote.__exit__ = MagicMock(return_value=False)
    remote.list_namespaces.return_value = [make_namespace("x"), make_namespace("y")]
    return remote


@pytest.fixture
def client_builder(remote_client):
    """Client builder that records its configs and returns ``remote_client``."""
    return MagicMock(return_value=remote_client)
