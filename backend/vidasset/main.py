"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from vidasset.core.config import settings
from vidasset.core.database import init_db
from vidasset.core.logging import setup_logging
from vidasset.core.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from vidasset.modules.video.router import router as video_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    await init_db()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Upload, transcode, rename and delete video assets.",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check endpoints",
        },
        {
            "name": "videos",
            "description": "Video assets - upload, encode, rename, delete",
        },
    ],
)

# The last middleware added runs outermost, so the correlation ID is set
# before the request is logged
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(video_router, prefix=settings.API_V1_PREFIX)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}
