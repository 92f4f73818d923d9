"""HTTP transport serving the configured function with uvicorn."""

from __future__ import annotations

import uvicorn

from funcshim.main import create_app
from funcshim.settings import get_settings

app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual run helper
    settings = get_settings()
    uvicorn.run(
        "transports.http_uvicorn:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
