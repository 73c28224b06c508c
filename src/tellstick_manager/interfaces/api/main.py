from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from .dispatcher import RestDispatcher
from ...utils.logging import get_logger

# Get logger for this module
logger = get_logger(__name__)

# All methods go to the dispatcher, which owns the 404 and 405 bodies
DISPATCHED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def create_app(dispatcher: RestDispatcher) -> FastAPI:
    """
    Create the FastAPI application.

    A single catch-all route hands every request to the dispatcher, which does
    its own segment-by-segment routing. Dispatching runs on the threadpool so
    backend calls never block the event loop.
    """
    app = FastAPI(
        title="Tellstick Device Manager",
        description="REST API for Telldus radio-controlled devices",
        version="0.1.0"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.dispatcher = dispatcher

    @app.api_route("/{path:path}", methods=DISPATCHED_METHODS, include_in_schema=False)
    async def dispatch(path: str, request: Request):
        body = await request.body()
        logger.debug(f"API request: {request.method} {request.url.path}")
        return await run_in_threadpool(
            dispatcher.dispatch, request.method, request.url.path, body
        )

    return app
