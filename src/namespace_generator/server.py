"""HTTP surface of the plugin generator.

This module builds the FastAPI application Argo CD calls through the
ApplicationSet plugin generator, and runs it under uvicorn.
"""

import hmac

import pydantic
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from icecream import ic
from starlette.concurrency import run_in_threadpool

from namespace_generator import __version__, console
from namespace_generator.core.resolver import NamespaceResolver
from namespace_generator.exceptions import NamespaceGeneratorError, ValidationError
from namespace_generator.models import GenerateRequest, ServerSettings

GETPARAMS_PATH = "/api/v1/getparams.execute"
HEALTH_PATH = "/health"


def _is_authorized(request: Request, token: str | None) -> bool:
    """Check the caller's bearer token.

    Args:
        request: The incoming request.
        token: The expected token, None to accept every caller.

    Returns:
        True if the request may proceed.

    """
    if token is None:
        return True
    scheme, _, presented = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return False
    return hmac.compare_digest(presented.strip().encode(), token.encode())


def create_app(resolver: NamespaceResolver, *, token: str | None = None) -> FastAPI:
    """Build the plugin application.

    Args:
        resolver: Resolver used for every generate request.
        token: Bearer token callers must present, None to disable the check.

    Returns:
        The configured FastAPI application.

    """
    app = FastAPI(title="Namespace Generator", version=__version__, docs_url=None, redoc_url=None)
    app.state.resolver = resolver

    @app.get(HEALTH_PATH, tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(GETPARAMS_PATH, tags=["generator"])
    async def get_params(request: Request) -> Response:
        """Answer a ``getparams.execute`` call.

        Malformed bodies and invalid selectors give 400, every other failure
        gives 500; error responses carry no body.
        """
        if not _is_authorized(request, token):
            console.warning("Rejected request with a missing or invalid bearer token")
            return Response(status_code=403)

        body = await request.body()
        try:
            generate_request = GenerateRequest.model_validate_json(body)
        except pydantic.ValidationError as e:
            console.error(f"Failed to parse request body: {console.plain(e)}")
            return Response(status_code=400)
        ic(generate_request)

        try:
            generate_response = await run_in_threadpool(resolver.resolve, generate_request)
        except ValidationError as e:
            console.error(f"Failed to parse label selector: {console.plain(e)}")
            return Response(status_code=400)
        except NamespaceGeneratorError:
            # Already logged by the resolver with the failing step
            return Response(status_code=500)

        return JSONResponse(generate_response.model_dump())

    return app


def serve(app: FastAPI, settings: ServerSettings) -> None:
    """Run the application under uvicorn.

    Serves TLS from ``settings.cert_dir`` unless ``settings.use_http`` is set.

    Args:
        app: The application from ``create_app``.
        settings: Process settings.

    """
    ssl_options: dict[str, str] = {}
    if not settings.use_http:
        ssl_options = {"ssl_certfile": str(settings.cert_file), "ssl_keyfile": str(settings.key_file)}

    scheme = "http" if settings.use_http else "https"
    console.action(f"Serving on {console.highlight(f'{scheme}://{settings.host}:{settings.port}')}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        **ssl_options,
    )
