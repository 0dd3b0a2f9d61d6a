"""FastAPI gateway: manual sync trigger, config check and direct object access."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from .config import Settings, get_settings
from .pipeline import run_sync_logged
from .storage import ObjectStore, build_store, infer_content_type

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET, PUT, POST"

app = FastAPI(title="Notion Blog Sync")


def _add_cors(app: FastAPI) -> None:
    """Allow the blog front end to read objects straight from the gateway."""
    allow_all = os.getenv("CORS_ALLOW_ALL", "true").lower() == "true"
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()]
    if allow_all or not origins:
        origins = ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Starlette/FastAPI disallow wildcard origins when credentials are enabled.
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "PUT", "POST"],
        allow_headers=["*"],
    )


_add_cors(app)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)}
    )


def get_store(settings: Settings = Depends(get_settings)) -> Optional[ObjectStore]:
    """The bound object store, or None when nothing is configured."""
    try:
        return build_store(settings)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error connecting to the store: {exc}",
        ) from exc


def _require_store(store: Optional[ObjectStore]) -> ObjectStore:
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No object store is bound; set R2_BUCKET or LOCAL_STORE_DIR.",
        )
    return store


def _run_pipeline(settings: Settings, store: Optional[ObjectStore]) -> None:
    """Background entry point; the outcome only reaches the logs and the store."""
    run_sync_logged(settings, store=store)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/check-config")
def check_config(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    """Report which settings are present without echoing their values."""
    try:
        store = build_store(settings)
    except Exception as exc:
        logger.warning("Store settings are present but unusable: %s", exc)
        store = None
    return {
        "NOTION_API_KEY": "Set" if settings.notion_api_key else "Not Set",
        "NOTION_DATABASE_ID": "Set" if settings.notion_database_id else "Not Set",
        "R2_BUCKET": "Connected" if store is not None else "Not Connected",
    }


@app.get("/list-bucket")
def list_bucket(
    prefix: str = "",
    settings: Settings = Depends(get_settings),
    store: Optional[ObjectStore] = Depends(get_store),
) -> Dict[str, Any]:
    bound = _require_store(store)
    try:
        listing = bound.list(prefix=prefix, limit=settings.list_limit)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error listing objects: {exc}",
        ) from exc
    return {
        "objects": [
            {"key": obj.key, "size": obj.size, "uploaded": obj.uploaded}
            for obj in listing.objects
        ],
        "truncated": listing.truncated,
        "count": len(listing.objects),
    }


@app.post("/run-test", status_code=status.HTTP_202_ACCEPTED)
def run_test(
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    store: Optional[ObjectStore] = Depends(get_store),
) -> JSONResponse:
    """Acknowledge at once and run the sync after the response is sent."""
    background_tasks.add_task(_run_pipeline, settings, store)
    logger.info("Manual sync accepted")
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={
            "status": "accepted",
            "message": "Sync started in the background; check logs for the outcome.",
        },
    )


@app.get("/{key:path}")
def get_object(
    key: str, store: Optional[ObjectStore] = Depends(get_store)
) -> Response:
    bound = _require_store(store)
    if not key:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object Not Found")
    try:
        stored = bound.get(key)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error reading data: {exc}",
        ) from exc
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object Not Found")

    headers: Dict[str, str] = {}
    if stored.cache_control:
        headers["Cache-Control"] = stored.cache_control
    return Response(content=stored.body, media_type=stored.content_type, headers=headers)


@app.put("/{key:path}")
async def put_object(
    key: str, request: Request, store: Optional[ObjectStore] = Depends(get_store)
) -> PlainTextResponse:
    bound = _require_store(store)
    body = await request.body()
    content_type = infer_content_type(key, request.headers.get("content-type"))
    try:
        await run_in_threadpool(bound.put, key, body, content_type=content_type)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error storing data: {exc}",
        ) from exc
    return PlainTextResponse(f"Put {key} successfully!")


@app.api_route("/{key:path}", methods=["POST", "DELETE", "PATCH", "HEAD", "OPTIONS"])
def method_not_allowed(request: Request) -> PlainTextResponse:
    return PlainTextResponse(
        f"{request.method} is not allowed.",
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers={"Allow": ALLOWED_METHODS},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "notion_blog_sync.server:app",
        host=os.getenv("SYNC_HOST", "0.0.0.0"),
        port=int(os.getenv("SYNC_PORT", "8000")),
        reload=os.getenv("SYNC_RELOAD", "false").lower() == "true",
    )
