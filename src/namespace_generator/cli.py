#!/usr/bin/env python
"""Command-line interface for namespace-generator.

This module provides the main CLI entry point, collecting settings from
options and environment variables, wiring the local cluster reader into the
resolver, and starting the HTTP server.
"""

import sys
from pathlib import Path

import click
from icecream import ic

from namespace_generator import __version__, console
from namespace_generator.core.cluster import LocalCluster
from namespace_generator.core.resolver import NamespaceResolver
from namespace_generator.exceptions import ClusterConnectionError
from namespace_generator.models import CredentialMode, ServerSettings
from namespace_generator.remote.credentials import CredentialResolver
from namespace_generator.server import create_app, serve


def read_token(token_file: Path) -> str:
    """Read the plugin bearer token from a file.

    Args:
        token_file: Path to the token file (typically a mounted secret).

    Returns:
        The token with surrounding whitespace removed.

    Raises:
        click.ClickException: If the file cannot be read or is empty.

    """
    try:
        token = token_file.read_text().strip()
    except OSError as e:
        raise click.ClickException(f"Cannot read token file '{token_file}': {e}") from None
    if not token:
        raise click.ClickException(f"Token file '{token_file}' is empty")
    return token


def build_settings(
    *,
    host: str,
    port: int,
    use_http: bool,
    cert_dir: Path,
    token_file: Path | None,
    credential_mode: str,
    request_timeout: float,
    kube_context: str | None,
    debug: bool,
) -> ServerSettings:
    """Validate option values and collect them into ServerSettings.

    Raises:
        click.ClickException: If TLS material or the token file is missing.

    """
    settings = ServerSettings(
        host=host,
        port=port,
        use_http=use_http,
        cert_dir=cert_dir,
        token=read_token(token_file) if token_file else None,
        credential_mode=CredentialMode(credential_mode),
        request_timeout=request_timeout,
        kube_context=kube_context,
        debug=debug,
    )

    if not settings.use_http:
        for path in (settings.cert_file, settings.key_file):
            if not path.is_file():
                raise click.ClickException(f"TLS file '{path}' not found; set --cert-dir or use --use-http")

    if settings.token is None:
        console.warning("No token file configured; accepting unauthenticated requests")

    return settings


@click.command(help="Argo CD ApplicationSet plugin generator listing namespaces by label selector")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, envvar="NS_GEN_DEBUG", help="print debug information")
@click.option("--host", default="0.0.0.0", show_default=True, envvar="NS_GEN_HOST", help="interface to bind")
@click.option("--port", default=5000, show_default=True, type=int, envvar="NS_GEN_PORT", help="port to bind")
@click.option("--use-http", is_flag=True, envvar="NS_GEN_USE_HTTP", help="serve plain HTTP instead of TLS")
@click.option(
    "--cert-dir",
    default="/mnt/serving-certs",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    envvar="NS_GEN_CERT_DIR",
    help="directory holding tls.crt and tls.key",
)
@click.option(
    "--token-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="NS_GEN_TOKEN_FILE",
    help="file with the bearer token callers must present",
)
@click.option(
    "--credential-mode",
    type=click.Choice([mode.value for mode in CredentialMode]),
    default=CredentialMode.NONE.value,
    show_default=True,
    envvar="NS_GEN_CREDENTIAL_MODE",
    help="how remote clusters are authenticated",
)
@click.option(
    "--request-timeout",
    default=30.0,
    show_default=True,
    type=click.FloatRange(min=0, min_open=True),
    envvar="NS_GEN_REQUEST_TIMEOUT",
    help="timeout in seconds for every outbound call",
)
@click.option("--kube-context", envvar="NS_GEN_KUBE_CONTEXT", help="kubeconfig context when running outside a cluster")
def cli(
    version: bool,
    debug: bool,
    host: str,
    port: int,
    use_http: bool,
    cert_dir: Path,
    token_file: Path | None,
    credential_mode: str,
    request_timeout: float,
    kube_context: str | None,
) -> None:
    """Process CLI arguments and start the plugin server.

    Args:
        version: Print version and exit.
        debug: Enable debug output.
        host: Interface to bind.
        port: Port to bind.
        use_http: Serve plain HTTP instead of TLS.
        cert_dir: Directory with the serving certificate and key.
        token_file: File with the expected bearer token.
        credential_mode: How remote clusters are authenticated.
        request_timeout: Timeout in seconds for every outbound call.
        kube_context: Kubeconfig context when running outside a cluster.

    """
    if not debug:
        ic.disable()

    if version:
        click.echo(__version__)
        return

    settings = build_settings(
        host=host,
        port=port,
        use_http=use_http,
        cert_dir=cert_dir,
        token_file=token_file,
        credential_mode=credential_mode,
        request_timeout=request_timeout,
        kube_context=kube_context,
        debug=debug,
    )
    ic(settings)

    try:
        local_cluster = LocalCluster(context=settings.kube_context)
    except ClusterConnectionError as e:
        console.error(f"Cluster connection failed: {console.plain(e)}")
        sys.exit(1)

    resolver = NamespaceResolver(
        local_cluster,
        CredentialResolver(settings.credential_mode, timeout=settings.request_timeout),
        timeout=settings.request_timeout,
    )
    console.info(f"Remote credential mode: {console.highlight(settings.credential_mode.value)}")

    serve(create_app(resolver, token=settings.token), settings)


if __name__ == "__main__":
    cli()
