"""Tests for the Redis cache manager."""

from unittest.mock import MagicMock

import redis

from mediconnect.core.redis_client import CacheManager


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    assert cache_manager.get_json("role:1") is None
    mock_redis.get.assert_called_once_with("role:1")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"role": "doctor"}'
    assert cache_manager.get_json("role:1") == {"role": "doctor"}


def test_cache_manager_get_json_ignores_corrupt_value():
    mock_redis = MagicMock()
    mock_redis.get.return_value = "{not json"

    assert CacheManager(redis_client=mock_redis).get_json("role:1") is None


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test without TTL
    assert cache_manager.set_json("role:1", {"role": "patient"}) is True
    mock_redis.set.assert_called_once_with("role:1", '{"role": "patient"}')

    # Test with TTL
    mock_redis.reset_mock()
    assert cache_manager.set_json("role:1", {"role": "patient"}, ttl=300) is True
    mock_redis.setex.assert_called_once_with("role:1", 300, '{"role": "patient"}')


def test_cache_manager_delete_and_exists():
    mock_redis = MagicMock()
    mock_redis.exists.return_value = 1
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.delete("blacklist:abc") is True
    mock_redis.delete.assert_called_once_with("blacklist:abc")
    assert cache_manager.exists("blacklist:abc") is True


def test_cache_manager_degrades_when_redis_is_down():
    mock_redis = MagicMock()
    error = redis.ConnectionError("unreachable")
    mock_redis.get.side_effect = error
    mock_redis.set.side_effect = error
    mock_redis.setex.side_effect = error
    mock_redis.delete.side_effect = error
    mock_redis.exists.side_effect = error
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("role:1") is None
    assert cache_manager.set_json("role:1", {"role": "doctor"}, ttl=60) is False
    assert cache_manager.delete("role:1") is False
    assert cache_manager.exists("role:1") is False


async def test_role_lookup_survives_redis_outage(client, make_doctor, fake_redis):
    """Role resolution falls through to the database when Redis is down."""
    doctor = await make_doctor()
    fake_redis.get.side_effect = redis.ConnectionError("unreachable")
    fake_redis.setex.side_effect = redis.ConnectionError("unreachable")

    response = await client.get("/api/v1/users/me/role", headers=doctor["headers"])

    assert response.status_code == 200
    assert response.json()["role"] == "doctor"
