import pytest

from conftest import make_format, make_info
from redirector.services.cache import ResolutionCache, parse_expiry

URL = "https://www.youtube.com/watch?v=abc123"


@pytest.fixture
def cache(clock):
    return ResolutionCache(max_entries=3, clock=clock)


@pytest.mark.parametrize("direct_url, expected", [
    ("https://cdn.example/v?expire=1700000000&sig=1", 1700000000),
    ("https://cdn.example/v?sig=1&expire=%2B5", 5),
    ("https://cdn.example/v?sig=1", None),
    ("https://cdn.example/v?expire=soon", None),
    ("https://cdn.example/v?expire=", None),
    ("https://cdn.example/v?expire=1.5", None),
])
def test_parse_expiry(direct_url, expected):
    assert parse_expiry(direct_url) == expected


def test_entry_valid_strictly_before_expiry(cache, clock):
    fmt = make_format(expire=2_000)
    info = make_info(fmt)
    assert cache.store(URL, fmt, info) is True

    clock.now = 1_999.9
    entry = cache.lookup(URL)
    assert entry is not None
    assert entry.format is fmt
    assert entry.info is info
    assert entry.expires_at == 2_000

    clock.now = 2_000
    assert cache.lookup(URL) is None
    assert URL not in cache


def test_expired_entry_removed_on_lookup(cache, clock):
    fmt = make_format(expire=1_500)
    cache.store(URL, fmt, make_info(fmt))
    assert len(cache) == 1

    clock.now = 5_000
    assert cache.lookup(URL) is None
    assert len(cache) == 0


def test_store_without_expiry_is_noop(cache):
    fmt = make_format(expire=None)
    assert cache.store(URL, fmt, make_info(fmt)) is False
    assert len(cache) == 0
    assert cache.lookup(URL) is None


def test_store_replaces_whole_entry(cache):
    first = make_format("18", expire=2_000)
    second = make_format("22", expire=3_000)
    cache.store(URL, first, make_info(first))
    cache.store(URL, second, make_info(second))

    entry = cache.lookup(URL)
    assert entry.format is second
    assert entry.expires_at == 3_000
    assert len(cache) == 1


def test_lookup_unknown_url(cache):
    assert cache.lookup("https://youtu.be/none") is None


def test_sweep_removes_only_expired(cache, clock):
    for i, expire in enumerate([1_100, 1_200, 5_000]):
        fmt = make_format(expire=expire)
        cache.store(f"{URL}{i}", fmt, make_info(fmt))

    clock.now = 1_200
    assert cache.sweep() == 2
    assert len(cache) == 1
    assert f"{URL}2" in cache


def test_full_cache_sweeps_expired_first(cache, clock):
    for i, expire in enumerate([1_100, 5_000, 6_000]):
        fmt = make_format(expire=expire)
        cache.store(f"{URL}{i}", fmt, make_info(fmt))

    clock.now = 2_000
    fmt = make_format(expire=7_000)
    cache.store(f"{URL}new", fmt, make_info(fmt))

    assert len(cache) == 3
    assert f"{URL}0" not in cache
    assert f"{URL}1" in cache


def test_full_cache_evicts_earliest_expiry(cache):
    for i, expire in enumerate([6_000, 4_000, 5_000]):
        fmt = make_format(expire=expire)
        cache.store(f"{URL}{i}", fmt, make_info(fmt))

    fmt = make_format(expire=7_000)
    cache.store(f"{URL}new", fmt, make_info(fmt))

    assert len(cache) == 3
    assert f"{URL}1" not in cache
    assert f"{URL}new" in cache


def test_overwrite_in_full_cache_does_not_evict(cache):
    for i in range(3):
        fmt = make_format(expire=4_000 + i)
        cache.store(f"{URL}{i}", fmt, make_info(fmt))

    fmt = make_format(expire=9_000)
    cache.store(f"{URL}0", fmt, make_info(fmt))

    assert len(cache) == 3
    assert all(f"{URL}{i}" in cache for i in range(3))
