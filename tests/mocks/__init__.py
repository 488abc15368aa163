"""
Mock Infrastructure for Pattern Monitor Tests
=============================================
Provides a fakeredis-backed Redis client for offline testing without a
running Redis server.

Usage:
    from mocks import RecordingFakeRedis
"""

from .mock_redis import RecordingFakeRedis

__all__ = ["RecordingFakeRedis"]
