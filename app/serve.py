"""Run the gateway under uvicorn: ``python -m app.serve`` or ``sensayhacks-gateway``."""

import uvicorn

from app.dependencies import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,   # root logging is set up by create_app()
    )


if __name__ == "__main__":
    main()
