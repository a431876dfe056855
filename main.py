"""Main application entry point for the Study Assistant gateway."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import ApplicationConfig, load_config
from middleware import CorrelationMiddleware
from routers import health_router, metrics_router, study_router
from services import (
    ConfigurationError,
    DailyRateLimiter,
    HealthMetricsService,
    InferenceClient,
    InferenceRequestError,
    MalformedInputError,
    PayloadTooLargeError,
    RedisClient,
    StudyService,
    WindowRateLimiter,
)
from utils import configure_logging, get_logger, log_exception

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the process-wide services once and share them through app state."""
    config: ApplicationConfig = app.state.config
    configure_logging(config.log_level, json_output=config.log_json)

    redis_client = RedisClient(config)
    inference_client = InferenceClient(config)
    daily_limiter = DailyRateLimiter(config, redis_client)

    try:
        logger.info("Starting services...", quota_strategy=daily_limiter.strategy.value)
        if redis_client.configured:
            try:
                await redis_client.connect()
            except Exception:
                # Quota checks retry the connection and fall back per request.
                logger.warning("Redis unavailable at startup, quota counts start in-process")
        await inference_client.start()

        app.state.daily_limiter = daily_limiter
        app.state.window_limiter = WindowRateLimiter.from_config(config)
        app.state.study_service = StudyService(config, inference_client)
        app.state.health_metrics = HealthMetricsService(
            config, redis_client, inference_client, daily_limiter
        )
        logger.info("All services are running.")

        yield

    finally:
        logger.info("Shutting down services...")
        await inference_client.stop()
        await redis_client.disconnect()
        logger.info("All services stopped successfully.")


def register_exception_handlers(app: FastAPI) -> None:
    """Map service exceptions to HTTP responses."""

    @app.exception_handler(MalformedInputError)
    async def malformed_input_handler(request: Request, exc: MalformedInputError) -> JSONResponse:
        status_code = 413 if isinstance(exc, PayloadTooLargeError) else 400
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        log_exception(logger, exc, "Server misconfigured", path=request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(InferenceRequestError)
    async def inference_error_handler(request: Request, exc: InferenceRequestError) -> JSONResponse:
        logger.error(
            "Inference request failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            upstream_status=exc.status_code,
        )
        return JSONResponse(
            status_code=502,
            content={"error": str(exc), "upstreamStatus": exc.status_code},
        )


def create_app(config: Optional[ApplicationConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or load_config()
    app = FastAPI(
        title=config.app_name,
        description="Rate-limited, cached gateway to hosted translation, speech and quiz models",
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(study_router)
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    config = load_config()
    uvicorn.run(app, host=config.server_host, port=config.server_port)
