from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from backend.app.routers import health, upload
from backend.app.core.config import Config
from backend.app.core.errors import register_error_handlers
from backend.app.services.file_upload import (
    UPLOAD_CATEGORIES,
    URL_SEGMENT,
    ensure_directories,
)
from backend.app.utils.logger import create_logger

logger = create_logger(__name__, level=Config.LOG_LEVEL, log_file=Config.LOG_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Application starting up...")
    ensure_directories()
    yield
    # Shutdown
    logger.info("Application shutting down...")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Upload API",
        lifespan=lifespan,
        docs_url="/docs" if Config.is_development() else None,
        redoc_url=None,
    )

    register_error_handlers(app)
    app.middleware("http")(upload.reject_oversized_uploads)

    # Configure CORS last so it wraps the error envelopes too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include Routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(upload.router, tags=["Upload"])

    # Stored files are public, in-flight temp/ parts are not.
    # Directories are created in lifespan.
    for category in UPLOAD_CATEGORIES:
        app.mount(
            f"/{URL_SEGMENT}/{category.directory}",
            StaticFiles(directory=str(Config.UPLOAD_ROOT / category.directory), check_dir=False),
            name=f"{URL_SEGMENT}-{category.name}",
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Uvicorn server...")
    uvicorn.run("backend.app.main:app", host=Config.HOST, port=Config.PORT, reload=Config.is_development())
