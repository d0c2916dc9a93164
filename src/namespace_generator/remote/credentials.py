"""Cloud workload-identity credential resolution.

This module obtains short-lived Google Cloud access tokens from the
application default credential chain, the same way ``argocd-k8s-auth gcp``
does, for authenticating to remote GKE clusters.
"""

import functools

import google.auth
import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from icecream import ic

from namespace_generator.exceptions import CredentialResolutionError
from namespace_generator.models import ClusterConnectionConfig, CredentialMode

GCP_SCOPES = (
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/userinfo.email",
)


class CredentialResolver:
    """Decides whether a remote request needs a token and fetches it.

    Attributes:
        mode: The configured credential mode.
        timeout: Timeout in seconds for the token exchange.

    """

    def __init__(self, mode: CredentialMode = CredentialMode.NONE, *, timeout: float | None = None) -> None:
        """Initialize the resolver.

        Args:
            mode: How remote clusters are authenticated.
            timeout: Timeout in seconds for the token exchange, None for the library default.

        """
        self.mode: CredentialMode = CredentialMode(mode)
        self.timeout: float | None = timeout

    def requires_token(self, config: ClusterConnectionConfig) -> bool:
        """Return True if a bearer token must be fetched for this cluster.

        In ``exec`` mode the token is fetched only when the secret describes
        an exec credential provider; the provider itself is never run.

        Args:
            config: The decoded connection document.

        """
        match self.mode:
            case CredentialMode.GCP:
                return True
            case CredentialMode.EXEC:
                exec_config = config.exec_provider_config
                return exec_config is not None and bool(exec_config.command)
            case _:
                return False

    def resolve(self) -> str:
        """Fetch an access token from the ambient Google credentials.

        Performs exactly one token exchange; nothing is cached.

        Returns:
            The bearer token string.

        Raises:
            CredentialResolutionError: If no credentials are available or the
                token exchange fails.

        """
        try:
            credentials, project = google.auth.default(scopes=list(GCP_SCOPES))
            ic(project)
            request = google.auth.transport.requests.Request()
            if self.timeout is not None:
                request = functools.partial(request, timeout=self.timeout)
            credentials.refresh(request)
        except GoogleAuthError as err:
            raise CredentialResolutionError(f"Failed to obtain cloud access token: {err}") from err

        if not credentials.token:
            raise CredentialResolutionError("Cloud credentials returned an empty access token")
        return str(credentials.token)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"CredentialResolver(mode={self.mode.value!r}, timeout={self.timeout!r})"
