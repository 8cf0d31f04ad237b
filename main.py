"""
Skill Swap Backend API Server

FastAPI application for the Campus Skill Swap platform.
Serves friendships, chat, skill sessions, feedback and the real-time relay.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from datetime import datetime, timezone
import time

from skillswap import config
from skillswap.api.routes import chat, feedback, friends, realtime, sessions, users
from skillswap.database import close_redis, init_models, init_redis
from skillswap.services.errors import SkillSwapError
from skillswap.services.relay import ConnectionRegistry, RedisRelay, get_relay, set_relay

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Skill Swap API server...")

    if config.AUTO_CREATE_TABLES:
        await init_models()
        logger.info("Database tables ensured")

    redis_relay = None
    if config.RELAY_BACKEND == "redis":
        redis = await init_redis()
        redis_relay = RedisRelay(redis, ConnectionRegistry())
        set_relay(redis_relay)
        redis_relay.start()
        logger.info("Redis relay started")
    else:
        logger.info("In-process relay active")

    yield

    # Shutdown
    logger.info("Shutting down Skill Swap API server...")
    if redis_relay is not None:
        await redis_relay.stop()
        await close_redis()
        set_relay(None)
        logger.info("Redis relay stopped")


# Create FastAPI application
app = FastAPI(
    title="Skill Swap API",
    description="Campus Skill Swap: friends, chat, timed skill sessions and peer feedback",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration_ms:.2f}ms"
    )

    return response


# Domain error handler (NotFound, Forbidden, Conflict, LimitExceeded, ...)
@app.exception_handler(SkillSwapError)
async def skillswap_exception_handler(request: Request, exc: SkillSwapError):
    """Render typed service failures"""
    logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal server error occurred",
                "details": str(exc) if app.debug else None
            }
        }
    )


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors())
            }
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns server status, version and relay backend.
    """
    relay = get_relay()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "service": "skillswap-api",
        "relay": type(relay).__name__,
    }


# Include routers
app.include_router(users.router)
app.include_router(friends.router)
app.include_router(chat.router)
app.include_router(sessions.router)
app.include_router(feedback.router)
app.include_router(realtime.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": "Skill Swap API",
        "version": "1.0.0",
        "description": "Campus Skill Swap backend",
        "docs": "/api/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
