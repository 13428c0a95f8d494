"""
Liveness endpoint and service runner for CF DDNS.

The FastAPI app only answers `GET /health`. `run_service()` serves it with
uvicorn and runs the reconcile scheduler next to it on the same event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse
from starlette import status as st_status
from starlette.exceptions import HTTPException as StarletteHTTPException

from cf_ddns.logging_config import build_uvicorn_log_config

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from cf_ddns.config import Config
    from cf_ddns.reconciler import Reconciler


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Health endpoint ready.")

    yield

    logger.info("Health endpoint shutting down.")


app = FastAPI(
    title="CF DDNS",
    description="Liveness endpoint of the CloudFlare DDNS updater",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    redirect_slashes=False,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    _request: Request,
    exc: StarletteHTTPException,
) -> Response:
    """
    Answer every unknown path or method with a plain 404.

    Routing raises 405 for a known path with the wrong method; it is reported
    as 404 as well.
    """
    if exc.status_code in {
        st_status.HTTP_404_NOT_FOUND,
        st_status.HTTP_405_METHOD_NOT_ALLOWED,
    }:
        return PlainTextResponse("Not Found", status_code=st_status.HTTP_404_NOT_FOUND)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code)


@app.get("/health")
async def health() -> Response:
    """Health check endpoint."""
    return PlainTextResponse("OK")


def build_server(config: Config) -> uvicorn.Server:
    """
    Build the uvicorn server for the liveness endpoint.

    Parameters
    ----------
    config : Config
        Application configuration.

    Returns
    -------
    uvicorn.Server
        A server that has not been started yet.
    """
    return uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=config.logging.level.lower(),
            # Probes hit /health every few seconds
            access_log=config.logging.level == "DEBUG",
            log_config=build_uvicorn_log_config(config.logging),
        ),
    )


async def run_service(config: Config, reconciler: Reconciler) -> None:
    """
    Serve the liveness endpoint and run the reconcile loop until one stops.

    A termination signal stops uvicorn, which then cancels the loop. A fatal
    error in the loop stops uvicorn and is re-raised.

    Parameters
    ----------
    config : Config
        Application configuration.
    reconciler : Reconciler
        The reconciler driven on every tick.

    Raises
    ------
    IPExtractionError
        If a cycle cannot extract an IP address.
    """
    server = build_server(config)

    logger.info(
        'CF DDNS starting: %d zone(s), interval %d ms, health on "%s:%d".',
        len(config.zones),
        config.update_interval,
        config.server.host,
        config.server.port,
    )

    serve_task = asyncio.create_task(server.serve(), name="health-server")
    loop_task = asyncio.create_task(
        reconciler.run_forever(config.update_interval_seconds),
        name="reconcile-loop",
    )

    done, _ = await asyncio.wait(
        {serve_task, loop_task},
        return_when=asyncio.FIRST_COMPLETED,
    )

    if loop_task in done:
        server.should_exit = True
        await serve_task
        loop_task.result()
        return

    loop_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await loop_task
    serve_task.result()

    logger.info("CF DDNS stopped.")
