import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """The CLI points structlog at the runner's stderr; undo that after each test."""
    yield
    structlog.reset_defaults()
