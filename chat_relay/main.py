import uvicorn

from .config import get_settings


def main() -> None:
    """Run the relay under uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "chat_relay.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
