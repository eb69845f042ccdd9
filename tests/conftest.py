"""pytest configuration for stocktalk tests."""

import os
import sys
import uuid
from pathlib import Path

import pytest

# Add src directory to path so tests can import stocktalk
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Keep tests off real databases, caches and services
os.environ["DUCKDB_PATH"] = ":memory:"
os.environ["REDIS_ENABLED"] = "false"
os.environ.pop("STOCKTALK_CLASSIFY_URL", None)
os.environ.pop("STOCKTALK_EXTRACT_URL", None)
os.environ.pop("STOCKTALK_API_KEY", None)
os.environ.pop("STOCKTALK_CONFIG_PATH", None)
os.environ.pop("STOCKTALK_ENABLE_METRICS", None)

from stocktalk.assistant_config import AssistantConfig  # noqa: E402
from stocktalk.commands.conversation import ConversationContextManager  # noqa: E402
from stocktalk.commands.pending_clarifications import PendingClarificationManager  # noqa: E402
from stocktalk.db.connection import get_connection  # noqa: E402
from stocktalk.db.migrations import run_migrations  # noqa: E402


@pytest.fixture
def session_id() -> str:
    """Generate a fresh session id."""
    return str(uuid.uuid4())


@pytest.fixture
def other_session_id() -> str:
    """Generate a second session id."""
    return str(uuid.uuid4())


@pytest.fixture
def config() -> AssistantConfig:
    """Default assistant configuration pointing at test endpoints."""
    return AssistantConfig(
        classify_url="http://nlu.test/api/ai/classify-intent",
        extract_url="http://nlu.test/api/ai/extract-params",
        request_timeout_seconds=2.0,
    )


@pytest.fixture
def context_manager(config: AssistantConfig) -> ConversationContextManager:
    """Conversation context manager over an in-memory store."""
    return ConversationContextManager(config=config)


@pytest.fixture
def pending_clarifications() -> PendingClarificationManager:
    """In-memory pending clarification manager."""
    return PendingClarificationManager(default_expiry_seconds=30)


@pytest.fixture
def db_conn():
    """In-memory DuckDB connection with migrations applied."""
    conn = get_connection(":memory:")
    run_migrations(conn)
    yield conn
    conn.close()
