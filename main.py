"""FastAPI entry point for the course content & feedback lifecycle service."""

import logging
from contextlib import asynccontextmanager

import litellm
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import get_settings
from errors import IndexDeletionFailure, InvalidTransitionError, LifecycleError
from services.middleware import RequestContextMiddleware, current_request_id, install_log_filter
from services.registry import get_services

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s",
)
install_log_filter()
logger = logging.getLogger(__name__)

# ── Global LiteLLM settings ──────────────────────────────────
litellm.request_timeout = settings.label_timeout


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open and close the shared stores."""
    services = get_services()
    if await services.store.ping():
        logger.info("Metadata store (%s) reachable", settings.metadata_store_type)
    else:
        logger.warning("Metadata store (%s) unreachable — requests will fail", settings.metadata_store_type)

    yield

    await services.index.close()
    await services.store.close()


app = FastAPI(
    title="Course Lifecycle Service",
    description="Flag moderation, struggle-topic ledgers and course-material lifecycle",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)


# ── Domain errors → HTTP ─────────────────────────────────────
@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError):
    body: dict = {"detail": str(exc), "requestId": current_request_id()}
    if isinstance(exc, InvalidTransitionError):
        body.update(currentStatus=exc.current, requestedStatus=exc.requested, allowedTransitions=exc.allowed)
    elif isinstance(exc, IndexDeletionFailure):
        body.update(courseName=exc.course_name, attempted=exc.attempted, deletedCount=0, errors=exc.errors)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=body)


# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.flags import router as flags_router  # noqa: E402
from api.struggle import router as struggle_router  # noqa: E402
from api.documents import admin_router as documents_admin_router  # noqa: E402
from api.documents import router as documents_router  # noqa: E402

app.include_router(health_router)
app.include_router(flags_router)
app.include_router(struggle_router)
app.include_router(documents_admin_router)
app.include_router(documents_router)


if __name__ == "__main__":
    if settings.debug:
        # Development: single worker with reload
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.service_port,
            reload=True,
        )
    else:
        # Production: prefer gunicorn main:app -c deploy/gunicorn.conf.py
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.service_port,
            workers=4,
            timeout_keep_alive=120,
        )
