"""FastAPI application exposing the annotate pipeline over HTTP.

Usage:
    >>> app = create_app()
    >>> # uvicorn focus_annotator.service.app:create_app --factory --port 8787
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from focus_annotator.config import DEFAULT_PORT, VERSION, ServiceSettings
from focus_annotator.service.annotator import AnnotationService


def create_app(
    *,
    service: AnnotationService | None = None,
    settings: ServiceSettings | None = None,
) -> FastAPI:
    """Create the annotation HTTP app.

    Args:
        service: Pre-built pipeline. Built from ``settings`` (or the
            environment) when omitted.
        settings: Service configuration, used only when ``service`` is None.
    """
    if service is None:
        service = AnnotationService.from_settings(settings or ServiceSettings.from_env())

    app = FastAPI(
        title="Focus Annotator",
        description="Proposes keyboard focus order for design frames",
        version=VERSION,
    )
    # Plugin iframes send requests from a null origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.post("/annotate")
    async def annotate(request: Request) -> JSONResponse:
        try:
            payload: Any = await request.json()
        except ValueError:
            return JSONResponse(
                status_code=400,
                content={"ok": False, "error": "bad_request", "reason": "malformed_payload"},
            )
        try:
            result = await run_in_threadpool(service.handle, payload)
        except Exception as e:
            logger.exception("Annotate request failed")
            return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
        return JSONResponse(status_code=result.status, content=result.body)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return service.health()

    return app


def run_server(host: str = "127.0.0.1", port: int = DEFAULT_PORT) -> None:
    import uvicorn

    app = create_app()
    logger.info("Serving focus annotator on http://{}:{}", host, port)
    # Keep the loguru forwarding installed by configure_logging.
    uvicorn.run(app, host=host, port=port, log_level="warning", log_config=None)
