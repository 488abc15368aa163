import sys
from pathlib import Path

import pytest


# Ensure local src/ package imports work without editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# tests/ itself, so the fakeredis mocks import as `mocks`
TESTS = Path(__file__).resolve().parent
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """
    Configure custom pytest markers.

    This function is called by pytest at startup to register custom markers.
    """
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires Docker or external services)"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow-running (use pytest -m 'not slow' to skip)"
    )
    config.addinivalue_line(
        "markers",
        "requires_redis: mark test as requiring a running Redis instance"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle markers automatically.

    - Skip integration tests unless --run-integration flag is passed
    - Skip slow tests unless --run-slow flag is passed
    - Skip Redis-requiring tests if Redis is not reachable
    """
    run_integration = config.getoption("--run-integration", default=False)
    run_slow = config.getoption("--run-slow", default=False)

    skip_integration = pytest.mark.skip(
        reason="Integration test skipped. Use --run-integration to run."
    )
    skip_slow = pytest.mark.skip(
        reason="Slow test skipped. Use --run-slow to run."
    )
    skip_redis = pytest.mark.skip(
        reason="Redis not available. Start Redis with: docker run -p 6379:6379 redis"
    )

    redis_available = None
    for item in items:
        if "integration" in item.keywords and not run_integration:
            item.add_marker(skip_integration)

        if "slow" in item.keywords and not run_slow:
            item.add_marker(skip_slow)

        if "requires_redis" in item.keywords:
            if redis_available is None:
                redis_available = _check_redis_available()
            if not redis_available:
                item.add_marker(skip_redis)


def _check_redis_available() -> bool:
    """Check if Redis is available for integration tests."""
    try:
        import redis
        client = redis.Redis(host="localhost", port=6379, socket_timeout=2)
        client.ping()
        client.close()
        return True
    except Exception:
        return False


def pytest_addoption(parser):
    """Add custom command-line options for pytest."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires Docker services)"
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests"
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clean_config():
    """Reset config state between tests."""
    from pattern_monitor.core.config import reset_config
    reset_config()
    yield
    reset_config()


@pytest.fixture
def encoding_config():
    """Small encoding config (1024 trits) for fast tests."""
    from pattern_monitor.core.config import EncodingConfig
    return EncodingConfig(dimension=1024, block_size=64, version="v1")


@pytest.fixture
def test_config(encoding_config):
    """Full config with the small encoding and default bucket/retrieval."""
    from pattern_monitor.core.config import PatternMonitorConfig
    return PatternMonitorConfig(encoding=encoding_config)


# =============================================================================
# Mock Infrastructure Fixtures (offline testing)
# =============================================================================

@pytest.fixture
def redis_client():
    """
    fakeredis client shared by every bucket the store opens.

    Usage:
        async def test_write(memory_store, redis_client):
            ...
            assert redis_client.set_calls == ["semantic:v1:event"]
    """
    from mocks import RecordingFakeRedis
    return RecordingFakeRedis()


@pytest.fixture
def memory_store(test_config, redis_client):
    """RedisKeyValueStore whose buckets are backed by the fakeredis client."""
    from pattern_monitor.core.kv_store import RedisKeyValueStore
    return RedisKeyValueStore(test_config.store, client_factory=lambda url: redis_client)


@pytest.fixture
def log_records():
    """
    Capture loguru records emitted during the test.

    Yields a list of dicts with "level", "message" and "extra".
    """
    from loguru import logger

    records = []

    def _sink(message):
        record = message.record
        records.append({
            "level": record["level"].name,
            "message": record["message"],
            "extra": dict(record["extra"]),
        })

    handler_id = logger.add(_sink, level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)
