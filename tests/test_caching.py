"""Tests for Redis caching implementation."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import redis

from app.core.redis_client import CacheManager
from app.schemas.doctors import DoctorSearchParams
from app.services.doctor_service import DoctorService
from app.services.user_service import UserService


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    assert cache_manager.get_json("test_key") is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"name": "Test", "value": 123}'
    assert cache_manager.get_json("test_key") == {"name": "Test", "value": 123}


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.set_json("test_key", {"fee": Decimal("50.00")}) is True
    mock_redis.set.assert_called_once_with("test_key", '{"fee": "50.00"}')

    mock_redis.reset_mock()
    assert cache_manager.set_json("test_key", {"value": 1}, ttl=300) is True
    mock_redis.setex.assert_called_once_with("test_key", 300, '{"value": 1}')


def test_cache_manager_delete_pattern():
    """Test CacheManager delete_pattern method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    mock_redis.keys.return_value = [
        "doctor:list:::::1:10",
        "doctor:list:cardiology::::1:10",
    ]
    mock_redis.delete.return_value = 2

    assert cache_manager.delete_pattern("doctor:list:*") == 2
    mock_redis.keys.assert_called_once_with("doctor:list:*")


def test_cache_manager_fails_open():
    """A Redis outage degrades to cache misses."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    mock_redis.keys.side_effect = redis.ConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("doctor:1") is None
    assert cache_manager.set_json("doctor:1", {"a": 1}, ttl=60) is False
    assert cache_manager.delete_pattern("doctor:list:*") == 0


def test_doctor_list_cache_key_is_stable():
    """Equal searches share a key; case in the search term is ignored."""
    first = DoctorSearchParams(search="Heart", page=1)
    second = DoctorSearchParams(search="heart", page=1)
    other_page = DoctorSearchParams(search="heart", page=2)

    assert first.cache_key() == second.cache_key()
    assert first.cache_key() != other_page.cache_key()
    assert first.cache_key().startswith("doctor:list:")


@pytest.mark.asyncio
async def test_doctor_list_served_from_cache():
    """A cached listing is returned without touching the database."""
    cached = {"total": 0, "page": 1, "page_size": 10, "total_pages": 0, "items": []}
    cache = MagicMock(spec=CacheManager)
    cache.get_json.return_value = cached
    db = MagicMock()

    listing = await DoctorService(cache).list_doctors(db, DoctorSearchParams())

    assert listing == cached
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_doctor_list_cached_after_miss(db_session, doctor):
    """A miss queries the store and fills the cache with a TTL."""
    cache = MagicMock(spec=CacheManager)
    cache.get_json.return_value = None
    params = DoctorSearchParams()

    listing = await DoctorService(cache).list_doctors(db_session, params)

    assert listing["total"] == 1
    cache.set_json.assert_called_once_with(
        params.cache_key(), listing, ttl=DoctorService.DOCTOR_LIST_CACHE_TTL
    )


@pytest.mark.asyncio
async def test_rating_update_invalidates_doctor_cache(db_session, doctor):
    """Aggregate updates drop the cached profile and every cached listing."""
    cache = MagicMock(spec=CacheManager)

    await DoctorService(cache).update_rating_aggregate(
        db_session, doctor["id"], rating=Decimal("4.50"), total_reviews=2
    )

    cache.delete.assert_called_once_with(f"doctor:{doctor['id']}")
    cache.delete_pattern.assert_called_once_with("doctor:list:*")


@pytest.mark.asyncio
async def test_user_caching(db_session, patient):
    """Users are read from the store once and then from the cache."""
    store: dict = {}
    cache = MagicMock(spec=CacheManager)
    cache.get_json.side_effect = store.get
    cache.set_json.side_effect = lambda key, value, ttl=None: store.update({key: value})
    service = UserService(cache)

    first = await service.get_user_by_id(db_session, patient["id"])
    second = await service.get_user_by_id(db_session, patient["id"])

    assert first["email"] == patient["email"]
    assert second is first
    cache.set_json.assert_called_once()
