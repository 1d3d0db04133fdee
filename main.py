import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from expenser.core.config import settings
from expenser.core.context import build_services
from expenser.core.database import engine, init_db
from expenser.core.logging_config import setup_logging
from expenser.core.middleware import RequestContextMiddleware
from expenser.domain.storage.services import StorageError
from expenser.domain.transactions.store import NotAuthenticatedError
from expenser.web.routes import admin, api, auth, health

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the storage table and wire the services on startup."""
    await init_db()
    if not hasattr(app.state, "services"):
        app.state.services = build_services()
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Personal Finance Tracker",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.ALLOWED_HOSTS,
)
app.add_middleware(RequestContextMiddleware)

app.include_router(auth.router, tags=["auth"])
app.include_router(api.router, prefix="/api", tags=["api"])
app.include_router(admin.router, tags=["admin"])
app.include_router(health.router, tags=["health"])


@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": "Not authenticated"})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is unavailable"},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
