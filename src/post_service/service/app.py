"""
HTTP surface for the post service.

Built only after bootstrap succeeded, around the RunningService it produced.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .. import __version__
from ..bootstrap import RunningService
from ..errors import StoreError, ValidationFailed
from ..models import PostIn


def create_app(service: RunningService) -> FastAPI:
    posts = service.posts

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await service.aclose()
        logger.info("Post service stopped")

    app = FastAPI(title="post-service", version=__version__, lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(ValidationFailed)
    async def _validation_failed(request: Request, exc: ValidationFailed):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid") if errors else "invalid"
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers
        )

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/")
    async def root():
        return "post service"

    @app.post("/create", status_code=201)
    async def create_post(post: PostIn, background_tasks: BackgroundTasks):
        announcement = await posts.create(post)
        # published after the response is sent; outcome is not reported back
        if announcement is not None:
            background_tasks.add_task(posts.announce, announcement)
        return {"message": "Post created successfully"}

    @app.get("/all")
    async def list_posts():
        return [p.to_json() for p in await posts.list_all()]

    @app.put("/post/{post_id}")
    async def update_post(post_id: int, post: PostIn):
        await posts.update(post_id, post)
        return {"message": "Post updated successfully"}

    @app.delete("/post/{post_id}", status_code=204)
    async def delete_post(post_id: int):
        await posts.delete(post_id)
        return Response(status_code=204)

    @app.get("/healthz")
    async def healthz():
        store_up = await service.store.health()
        if service.publisher is None:
            publisher = "disabled"
        else:
            publisher = "available" if service.publisher.available else "unavailable"
        status = "ok" if store_up and publisher != "unavailable" else "degraded"
        return {
            "status": status,
            "store": "up" if store_up else "down",
            "publisher": publisher,
        }

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
