from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from image_host.storage.blob_store import BlobStore
from image_host.storage.metadata_store import MetadataStore
from image_host.settings import settings
from image_host.routers.images import router as images_router
from image_host.routers.uploads import router as uploads_router
from image_host.image_service.models import HealthResponse
from image_host.image_service.service import utcnow
from image_host.exceptions import add_exception_handlers

logging.basicConfig(level=settings.log_level.upper())
log = logging.getLogger("image-host")

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Opens the blob directory and metadata file for the application.
    """
    # Initialize resources
    app.state.blobs = BlobStore(settings.upload_dir)
    app.state.db = MetadataStore(settings.metadata_file)
    yield
    # Cleanup resources
    app.state.blobs.close()
    app.state.db.close()

# Initialize App
app = FastAPI(
    title=settings.app_title,
    lifespan=lifespan,
    description="Image Hosting Service",
)

# Add exception handlers
add_exception_handlers(app)

# CORS - Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add the routers
app.include_router(uploads_router)
app.include_router(images_router)

@app.get("/")
def read_root():
    """
        Default end point

    """
    return "Image Hosting Service is running."

# Check Health
@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(timestamp=utcnow())

if __name__ == "__main__":
    log.info("Image hosting service starting on port %s", settings.port)
    uvicorn.run("image_host.main:app", host=settings.host, port=settings.port)
