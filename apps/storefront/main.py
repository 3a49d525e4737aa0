"""Точка входа FastAPI."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import JSONResponse

from apps.storefront.config import get_settings
from apps.storefront.database import get_activity_store
from apps.storefront.middleware.activity import ActivityMiddleware
from apps.storefront.middleware.request_context import get_request_id
from apps.storefront.middleware.session import SessionContextMiddleware
from apps.storefront.routers import activities, health, storefront
from apps.storefront.services.activity_log import ActivityRepository
from apps.storefront.utils.api_errors import error_response

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = app.state.activity_store
    store.initialize()
    yield
    store.shutdown()


app = FastAPI(
    title="Storefront",
    description="Online boutique frontend with activity logging",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.activity_store = get_activity_store()
app.state.activity_repository = ActivityRepository(app.state.activity_store)

# last added runs first: session ids are bound before activity logging reads them
app.add_middleware(ActivityMiddleware, enabled=settings.activity_logging_enabled)
app.add_middleware(
    SessionContextMiddleware,
    cookie_name=settings.session_cookie_name,
    max_age=settings.session_cookie_max_age,
)

app.include_router(health.router, tags=["System"])
app.include_router(activities.router, prefix="/api/activities", tags=["Activities"])
app.include_router(storefront.router, tags=["Storefront"])


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if not isinstance(detail, str):
        detail = str(detail) if detail else "error"
    return JSONResponse(content={"detail": detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    trace_id = get_request_id(request.scope)
    logger.exception("Unhandled exception trace_id=%s path=%s", trace_id, request.url.path)
    return error_response(
        code="internal_error",
        message="internal server error",
        trace_id=trace_id,
        detail=str(exc)[:200],
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
