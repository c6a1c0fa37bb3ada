"""FastAPI server for deployrun.

Exposes the deployment orchestrator to the admin UI over HTTP and SSE.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deployrun.kernel.config.models import DeployRunConfig
from deployrun.kernel.logging import configure_logging, get_logger
from deployrun.kernel.orchestration.orchestrator import DeploymentOrchestrator
from deployrun.server.auth import TOKEN_HEADER, ApiError
from deployrun.server.routes import deploy_router

logger = get_logger(__name__)


def create_app(
    config: DeployRunConfig,
    orchestrator: DeploymentOrchestrator | None = None,
    configure_logs: bool = False,
) -> FastAPI:
    """Create FastAPI application for deployrun.

    Args:
        config: Orchestrator and server configuration
        orchestrator: Pre-built orchestrator; one is assembled from ``config`` if omitted
        configure_logs: If True, apply ``config.logging`` on startup
    """
    orchestrator = orchestrator or DeploymentOrchestrator.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        if configure_logs:
            log = config.logging
            configure_logging(
                level=log.level,
                format=log.format,
                output_file=log.output_file,
                use_color=log.use_color,
                enable_stdlib_bridge=log.enable_stdlib_bridge,
            )
        logger.info("Project root: {root}", root=config.project_root)
        if not config.admin_token:
            logger.warning("No admin token configured; deployment routes will answer 500")
        yield
        # Shutdown
        await orchestrator.aclose()

    app = FastAPI(
        title="deployrun",
        description="Single-flight deployment runs with live log streaming",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[TOKEN_HEADER, "Authorization", "Content-Type"],
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.body())

    app.include_router(deploy_router, prefix="/api")

    # Health check
    @app.get("/api/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "busy": orchestrator.is_busy()}

    return app


def run_server(
    config: DeployRunConfig,
    host: str = "127.0.0.1",
    port: int = 4000,
) -> None:
    """Run the deployrun server.

    Args:
        config: Orchestrator and server configuration
        host: Host to bind to
        port: Port to bind to
    """
    import uvicorn

    app = create_app(config, configure_logs=True)
    uvicorn.run(app, host=host, port=port, log_level=config.logging.level.lower())
