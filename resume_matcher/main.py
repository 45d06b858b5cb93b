from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from resume_matcher.utils.logging_config import configure_for_environment, get_logger

# Configure logging before the routers (and the DB client) log anything
configure_for_environment()
logger = get_logger(__name__)

from resume_matcher.middleware.error_handlers import (  # noqa: E402
    ExceptionHandlerMiddleware,
    PerformanceMiddleware,
    RequestLoggingMiddleware,
    http_exception_handler,
    validation_exception_handler,
)
from resume_matcher.routers import chat, matching, reports  # noqa: E402

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Resume Matcher API starting up...")
    logger.info("Initializing database indexes...")

    try:
        from resume_matcher.services.db import init_indexes
        await init_indexes()
        logger.info("Database indexes initialized successfully")
    except PyMongoError as e:
        logger.warning(f"Database index initialization had issues: {e}")
        logger.info("Application will continue - some operations may be slower without indexes")

    logger.info("Resume Matcher API startup completed")

    yield

    logger.info("Resume Matcher API shutting down...")
    from resume_matcher.services.db import client
    client.close()
    logger.info("Resume Matcher API shutdown completed")


app = FastAPI(title="Resume Matcher API", version=API_VERSION, lifespan=lifespan)

# The last middleware added is the outermost one
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=30.0)
app.add_middleware(ExceptionHandlerMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    return {"message": "Welcome to the Resume Matcher API", "version": API_VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


app.include_router(matching.router, prefix="/api/match", tags=["matching"])
app.include_router(reports.router, prefix="/api/match")
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])

logger.info("Resume Matcher API initialized successfully")
