from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from api.config.logging import setup_logging
from api.config.settings import settings
from api.infra.database import close_database
from api.v1.core.exceptions import (
    CompensationJobsException,
    RequestContextMiddleware,
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
)
from api.v1.core.registries import job_registry
from api.v1.healthz import router as health_router
from api.v1.infra.jobs.registry_init import register_job_handlers
from api.v1.infra.jobs.routes import router as jobs_router
from api.v1.keeper_tests.routes import router as keeper_tests_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Background job queue for compensation and HR workflows",
        version=settings.version,
        debug=settings.debug,
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(CompensationJobsException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(jobs_router, prefix="/v1")
    app.include_router(keeper_tests_router, prefix="/v1")

    if not job_registry.list():
        register_job_handlers(settings)

    # Handlers are fixed once the app is built outside development
    if settings.environment != "development":
        job_registry.freeze()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
