"""Data models for namespace-generator.

This module provides type-safe data structures for the plugin request and
response envelopes, the connection document stored in remote cluster
secrets, and the per-request and per-process configuration values.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Request models reject unknown fields at every level
_STRICT = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class LabelSelectorRequirement(BaseModel):
    """A single set-based requirement of a label selector."""

    model_config = _STRICT

    key: str
    operator: str
    values: list[str] | None = None


class LabelSelector(BaseModel):
    """Kubernetes-style label selector.

    Attributes:
        match_labels: Equality requirements, one per key.
        match_expressions: Set-based requirements.

    """

    model_config = _STRICT

    match_labels: dict[str, str] | None = Field(default=None, alias="matchLabels")
    match_expressions: list[LabelSelectorRequirement] | None = Field(default=None, alias="matchExpressions")


class Parameters(BaseModel):
    """Generator parameters; a null ``clusterName`` selects the local cluster."""

    model_config = _STRICT

    cluster_name: str = Field(default="", alias="clusterName")
    label_selector: LabelSelector | None = Field(default=None, alias="labelSelector")

    @field_validator("cluster_name", mode="before")
    @classmethod
    def _null_cluster_name(cls, value: object) -> object:
        return "" if value is None else value


class Input(BaseModel):
    model_config = _STRICT

    parameters: Parameters = Field(default_factory=Parameters)


class GenerateRequest(BaseModel):
    """Body of an Argo CD plugin generator ``getparams.execute`` call."""

    model_config = _STRICT

    application_set_name: str | None = Field(default=None, alias="applicationSetName")
    input: Input = Field(default_factory=Input)


class OutParameters(BaseModel):
    namespace: str


class Output(BaseModel):
    parameters: list[OutParameters] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    """Plugin response: one parameter set per matched namespace."""

    output: Output = Field(default_factory=Output)


class ExecProviderConfig(BaseModel):
    """External credential command described by the cluster secret.

    Parsed for mode selection only; the command is never executed.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    api_version: str = Field(default="", alias="apiVersion")
    command: str = ""
    args: list[str] = Field(default_factory=list)


class TLSClientConfig(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    insecure: bool = False
    ca_data: str = Field(default="", alias="caData")


class ClusterConnectionConfig(BaseModel):
    """Connection document stored under the ``config`` key of a cluster secret.

    Unknown fields are ignored so newer secret layouts keep working.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    exec_provider_config: ExecProviderConfig | None = Field(default=None, alias="execProviderConfig")
    tls_client_config: TLSClientConfig = Field(default_factory=TLSClientConfig, alias="tlsClientConfig")


class CredentialMode(str, Enum):
    """How remote cluster requests are authenticated.

    Inherits from str so values can be used directly as CLI choices
    and environment variable values.
    """

    NONE = "none"
    GCP = "gcp"
    EXEC = "exec"


class DecodedClusterSecret(NamedTuple):
    """Connection material extracted from a remote cluster secret.

    Attributes:
        endpoint: The API server URL.
        ca_bytes: The decoded certificate authority bytes (may be empty).
        config: The parsed connection document.

    """

    endpoint: str
    ca_bytes: bytes
    config: ClusterConnectionConfig


@dataclass(frozen=True, slots=True)
class RemoteClientConfig:
    """Everything needed to build one remote API client.

    Attributes:
        endpoint: The API server URL.
        ca_bytes: Trust root for the API server certificate.
        insecure: Skip server certificate verification.
        bearer_token: Token sent as ``Authorization: Bearer``; None for TLS-only.

    """

    endpoint: str
    ca_bytes: bytes = b""
    insecure: bool = False
    bearer_token: str | None = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ServerSettings:
    """Process-wide settings collected from the command line and environment.

    Attributes:
        host: Interface to bind.
        port: Port to bind.
        use_http: Serve plain HTTP instead of TLS.
        cert_dir: Directory holding ``tls.crt`` and ``tls.key``.
        token: Expected plugin bearer token; None disables caller authentication.
        credential_mode: How remote clusters are authenticated.
        request_timeout: Timeout in seconds for every outbound call.
        kube_context: Kubeconfig context used outside a cluster.
        debug: Enable debug tracing.

    """

    host: str = "0.0.0.0"
    port: int = 5000
    use_http: bool = False
    cert_dir: Path = Path("/mnt/serving-certs")
    token: str | None = field(default=None, repr=False)
    credential_mode: CredentialMode = CredentialMode.NONE
    request_timeout: float = 30.0
    kube_context: str | None = None
    debug: bool = False

    @property
    def cert_file(self) -> Path:
        """Path of the serving certificate."""
        return self.cert_dir / "tls.crt"

    @property
    def key_file(self) -> Path:
        """Path of the serving private key."""
        return self.cert_dir / "tls.key"
