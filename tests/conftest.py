import pytest
from loguru import logger

from app.utils.config import get_settings


@pytest.fixture
def log_messages():
    """Capture loguru messages as ``"LEVEL message"`` strings."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda message: messages.append(
            f"{message.record['level'].name} {message.record['message']}"
        ),
        level="DEBUG",
    )
    yield messages
    try:
        logger.remove(handler_id)
    except ValueError:
        # Already dropped by setup_logging()
        pass


@pytest.fixture
def fresh_settings(monkeypatch, tmp_path):
    """Settings rebuilt from a clean environment for each test."""
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()
