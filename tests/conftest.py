"""Root-level test configuration for ngpack.

Registers the ``requirement`` marker and resets global tracer and structlog
state between tests.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
import structlog


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Path to the repository root."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None, None, None]:
    """Clear cached tracers and structlog configuration around each test."""
    from ngpack.telemetry.tracing import reset_tracer

    reset_tracer()
    yield
    reset_tracer()
    structlog.reset_defaults()


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "requirement(id): Mark test as covering a specific requirement",
    )
