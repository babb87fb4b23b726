"""FastAPI application for the smart pool controller."""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from smartpool import __version__
from smartpool.api.endpoints import router
from smartpool.errors import SmartPoolError
from smartpool.models.api import ErrorResponse

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("SMARTPOOL_HOST", "0.0.0.0")
PORT = int(os.environ.get("SMARTPOOL_PORT", "8000"))
DEBUG = os.environ.get("SMARTPOOL_DEBUG", "false").lower() in ("true", "1", "yes")

app = FastAPI(
    title="Smart Pool Controller",
    description="Configurable rights pool controller over a constant-weight engine",
    version=__version__,
)


@app.exception_handler(SmartPoolError)
async def smart_pool_error_handler(request: Request, exc: SmartPoolError) -> JSONResponse:
    """Rejected controller calls become 400s carrying the error code."""
    logger.info("call_rejected", path=request.url.path, code=exc.code, detail=exc.detail)
    body = ErrorResponse(code=exc.code, detail=exc.detail or "")
    return JSONResponse(status_code=400, content=body.model_dump())


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the controller API server.

    Configuration via environment variables:
    - SMARTPOOL_HOST: Host to bind to (default: 0.0.0.0)
    - SMARTPOOL_PORT: Port to bind to (default: 8000)
    - SMARTPOOL_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "smartpool.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
