import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api.routes import router
from config import API_HOST, API_PORT, API_VERSION, DEFAULT_ERROR_MESSAGE, LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan events for startup and shutdown.

    Startup:
        - Test database connection
        - Create tables if not exist
        - Wire services to the SQL stores

    Shutdown:
        - Close database connection
    """
    logger.info("Starting FaceTrack API...")

    from database.connection import close_database, init_database, test_connection
    from services.container import get_services, set_services

    if await test_connection():
        await init_database()
        get_services()
        logger.info("FaceTrack API ready")
    else:
        logger.warning("Database not available. Requests touching storage will fail.")

    yield  # Application runs here

    logger.info("Shutting down...")
    set_services(None)
    await close_database()


# Create FastAPI app with lifespan
app = FastAPI(
    title="FaceTrack API",
    description="""
    Device binding, location relay and face identity service

    Features:
    - Bind tracking devices to user accounts
    - Relay location requests and reports
    - Enroll labelled faces and recognise them from device captures
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1", tags=["FaceTrack"])


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": DEFAULT_ERROR_MESSAGE})


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "FaceTrack API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health"
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=True
    )
