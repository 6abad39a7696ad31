import uvicorn

from window_limiter.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the rate limit API (``window-limiter`` console script)."""
    uvicorn.run("window_limiter.main:app", host="0.0.0.0", port=8000)
