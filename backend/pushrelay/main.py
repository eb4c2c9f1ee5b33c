"""Main FastAPI application for the push notification relay."""
import logging
import os
import socket
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .config import settings, get_firebase_credentials_path
from .database import init_db, close_db
from .rate_limit import limiter, rate_limit_handler
from .routers import devices_router, notifications_router, topics_router
from .services.push_sender import PushConfig, push_sender_service
from .services.scheduler import scheduler_service

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


def setup_logging():
    """Log to the console and, when LOG_DIR is set, to LOG_DIR/app.log."""
    handlers = [logging.StreamHandler()]
    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(settings.log_dir, "app.log")))

    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_local_ip_address() -> str:
    """Best-effort non-loopback IPv4 address of this host, for the startup banner."""
    try:
        # UDP connect sends nothing; it only selects the outbound interface
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("10.255.255.255", 1))
            address = sock.getsockname()[0]
    except OSError:
        return "localhost"
    return "localhost" if address.startswith("127.") else address


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    await init_db()
    logger.info("Database initialized")

    push_sender_service.configure(PushConfig(
        credentials_path=get_firebase_credentials_path(),
        use_application_default=settings.firebase_use_application_default,
    ))

    if settings.scheduler_enabled:
        scheduler_service.start()

    logger.info(f"Server running at http://{get_local_ip_address()}:{settings.port}")

    yield

    scheduler_service.stop()
    push_sender_service.close()
    await close_db()
    logger.info("Shutdown complete")


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors, reported as 400."""
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    return JSONResponse(status_code=400, content={"detail": detail})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Push Relay",
        description="Device token registry and Firebase Cloud Messaging fan-out",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(devices_router)
    app.include_router(notifications_router)
    app.include_router(topics_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "push_configured": push_sender_service.is_configured,
        }

    return app


setup_logging()

# Create the application instance
app = create_app()


def run():
    """Console entrypoint."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
