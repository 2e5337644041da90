"""
nodeblog - Headless Personal Blog Node

Main application entry point.

Run with:
    uvicorn nodeblog.main:app
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.auth import load_auth_token
from .api.routes_blogs import router as blogs_router
from .node import Node, build_node
from .observability import (
    setup_logging,
    get_logger,
    RequestContextMiddleware,
    check_health,
)

# Setup logging at import time
setup_logging()
logger = get_logger(__name__)


def create_app(node: Optional[Node] = None, auth_token: Optional[str] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        node: Pre-wired node (tests). Built from the environment at startup if None.
        auth_token: API token. Read from the environment at startup if None.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.node = node if node is not None else build_node()
        app.state.auth_token = auth_token if auth_token is not None else load_auth_token()

        logger.info(
            "Application startup complete",
            store_type=type(app.state.node.store).__name__,
            author_name=app.state.node.identity_manager.local_author.name,
        )

        yield

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="nodeblog",
        description="""
## Personal Blog Node

Publish short signed posts to this node's personal blog and
read the feed of every post the node knows about.

### Authentication

Every `/v1` call needs `Authorization: Bearer <token>`.

### Encoding

Ids and public keys are base64 encoded. Times are milliseconds
since the epoch. The feed is ordered by `timeReceived`.
        """,
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.include_router(blogs_router)

    @app.get("/health", tags=["System"])
    def health():
        """Basic liveness check."""
        return {"status": "healthy", "service": "nodeblog"}

    @app.get("/health/detailed", tags=["System"])
    def health_detailed(request: Request):
        """
        Detailed health check.

        Checks:
        - Service liveness
        - Local identity
        - Blog store connectivity
        """
        node = request.app.state.node
        health_status = check_health(
            identity_manager=node.identity_manager,
            blog_store=node.store,
        )
        return JSONResponse(
            status_code=200 if health_status.healthy else 503,
            content={
                "status": "healthy" if health_status.healthy else "unhealthy",
                "checks": health_status.checks,
                "duration_ms": health_status.duration_ms,
            },
        )

    @app.get("/metrics", tags=["System"])
    def metrics(request: Request):
        """Counters and latency percentiles."""
        return request.app.state.node.metrics.get_summary()

    return app


app = create_app()
