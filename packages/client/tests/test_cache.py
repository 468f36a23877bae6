"""In-memory query cache and key helper tests."""

from casesync.cache import keys
from casesync.cache.memory import MemoryQueryCache


def test_prefix_invalidation_marks_nested_keys_stale():
    cache = MemoryQueryCache()
    cache.set_cached_value(("ai-links", 1), ["a"])
    cache.set_cached_value(("ai-links", 2), ["b"])
    cache.set_cached_value(("cases",), [])

    cache.invalidate(keys.AI_LINKS)

    assert sorted(cache.stale_keys()) == [("ai-links", 1), ("ai-links", 2)]
    assert cache.get(("cases",)).stale is False


def test_specific_invalidation_leaves_siblings_fresh():
    cache = MemoryQueryCache()
    cache.set_cached_value(keys.case(1), {"id": 1})
    cache.set_cached_value(keys.case(2), {"id": 2})

    cache.invalidate(keys.case(1))

    assert cache.stale_keys() == [("case", 1)]


def test_seeding_replaces_stale_entry():
    cache = MemoryQueryCache()
    cache.set_cached_value(keys.document_summary(3), "old")
    cache.invalidate(keys.document_summary(3))
    cache.set_cached_value(keys.document_summary(3), "new")

    entry = cache.get(keys.document_summary(3))
    assert entry.value == "new"
    assert entry.stale is False


def test_invalidation_listeners():
    cache = MemoryQueryCache()
    seen = []
    unsubscribe = cache.on_invalidate(seen.append)
    cache.invalidate(keys.ALERTS)
    unsubscribe()
    cache.invalidate(keys.CASES)

    assert seen == [("alerts",)]
    assert cache.invalidations == [("alerts",), ("cases",)]


def test_key_matching():
    assert keys.matches(keys.DOCUMENTS, keys.case_documents(4))
    assert not keys.matches(keys.case_documents(4), keys.DOCUMENTS)
    assert not keys.matches(keys.CASES, keys.case(4))
