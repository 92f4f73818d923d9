from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo create_app()'s logging configuration so loggers never cache a captured stream."""
    yield
    structlog.reset_defaults()
