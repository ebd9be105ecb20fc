"""Local server entry point (``deepdive-dev``)."""
import uvicorn

from deepdive.config import settings


def main() -> None:
    """Serve the API, reloading on code changes outside production."""
    uvicorn.run(
        "deepdive.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.app_env == "development",
        log_level="info",
    )


if __name__ == "__main__":
    main()
