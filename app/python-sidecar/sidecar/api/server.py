"""
Patrolwatch Backend - FastAPI Server

Serves the patrol engine to the guard's app: checkpoint catalog,
patrol lifecycle, settings and the patrol log.
"""

import argparse
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .engine import get_engine
from .routes import checkpoints, logs, patrol, settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Resume an interrupted patrol on startup; suspend it and flush notifications on exit."""
    engine = get_engine()
    session = engine.manager.restore()
    if session is not None:
        logger.info("Resumed patrol %s", session.session_id)
    engine.scheduler.start()
    yield
    engine.scheduler.stop()
    engine.manager.suspend()
    await engine.manager.drain()


app = FastAPI(
    title="Patrolwatch Backend",
    description="Patrol session engine for security guard checkpoint rounds",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checkpoints.router, prefix="/api/checkpoints", tags=["checkpoints"])
app.include_router(patrol.router, prefix="/api/patrol", tags=["patrol"])
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(logs.router, prefix="/api/logs", tags=["logs"])


@app.get("/health")
def health():
    """Health check endpoint"""
    return {"status": "ok"}


@app.get("/")
def root():
    """Root endpoint with API info"""
    return {
        "name": "Patrolwatch Backend",
        "version": "1.0.0",
        "docs": "/docs",
    }


def main():
    """Main entry point for the sidecar"""
    parser = argparse.ArgumentParser(description="Patrolwatch Backend Server")
    parser.add_argument(
        "--port",
        type=int,
        default=9876,
        help="Port to run the server on (default: 9876)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    args = parser.parse_args()

    print(f"Starting Patrolwatch backend on {args.host}:{args.port}")

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["access"]["fmt"] = "%(asctime)s %(levelprefix)s %(client_addr)s - \"%(request_line)s\" %(status_code)s"
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s %(levelprefix)s %(message)s"
    log_config["formatters"]["access"]["datefmt"] = "%H:%M:%S"
    log_config["formatters"]["default"]["datefmt"] = "%H:%M:%S"

    # One worker: the active-session slot lives in process memory.
    uvicorn.run(app, host=args.host, port=args.port, log_level="info", log_config=log_config)


if __name__ == "__main__":
    main()
