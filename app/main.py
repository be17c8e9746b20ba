import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.dependencies import get_settings
from app.errors import GatewayError
from app.routers import chat, replicas, tasks

logger = logging.getLogger(__name__)

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def _level_from_name(name: str | None, default: str = "INFO") -> int:
    return _LEVELS.get((name or "").strip().upper(), _LEVELS[default])


def _setup_logging(level: str) -> None:
    """Configure root logging once; later calls only adjust the level.

    Unknown level names fall back to INFO.
    """
    root = logging.getLogger()
    root.setLevel(_level_from_name(level))
    if root.handlers:
        # already configured (pytest, uvicorn, etc.)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)


async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"Invalid request body: {location}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request body"
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


def create_app() -> FastAPI:
    settings = get_settings()
    _setup_logging(settings.log_level)

    app = FastAPI(title="SensayHacks Replica Gateway", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(chat.router)
    app.include_router(tasks.router)
    app.include_router(replicas.router)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
