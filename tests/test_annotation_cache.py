from datetime import timedelta

from conftest import BASE_TIME, make_annotation

from analyzers.annotation_cache import AnnotationCache


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_get_unanalyzed_returns_missing_ids_in_order():
    cache = AnnotationCache(clock=Clock(BASE_TIME))
    cache.store_batch([make_annotation("b")])
    assert cache.get_unanalyzed(["a", "b", "c"]) == ["a", "c"]


def test_store_batch_is_insert_only():
    cache = AnnotationCache(clock=Clock(BASE_TIME))
    first = make_annotation("1", sentiment="positive", score=0.9)
    second = make_annotation("1", sentiment="negative", score=0.1)

    assert cache.store_batch([first]) == 1
    assert cache.store_batch([second]) == 0
    assert cache.get("1") == first
    assert len(cache) == 1


def test_annotations_for_follows_input_order_and_skips_misses():
    cache = AnnotationCache(clock=Clock(BASE_TIME))
    cache.store_batch([make_annotation("1"), make_annotation("2")])
    assert [a.mention_id for a in cache.annotations_for(["2", "x", "1"])] == ["2", "1"]


def test_evict_older_than_uses_analyzed_at():
    clock = Clock(BASE_TIME)
    cache = AnnotationCache(max_age=timedelta(hours=3), clock=clock)
    cache.store_batch([
        make_annotation("old", analyzed_at=BASE_TIME - timedelta(hours=4)),
        make_annotation("fresh", analyzed_at=BASE_TIME - timedelta(hours=1)),
    ])

    assert cache.evict_older_than() == 1
    assert "old" not in cache
    assert "fresh" in cache

    clock.now = BASE_TIME + timedelta(hours=5)
    assert cache.evict_older_than() == 1
    assert len(cache) == 0


def test_evict_with_explicit_max_age():
    cache = AnnotationCache(clock=Clock(BASE_TIME))
    cache.store_batch([make_annotation("1", analyzed_at=BASE_TIME - timedelta(minutes=10))])
    assert cache.evict_older_than(timedelta(minutes=5)) == 1


def test_clear():
    cache = AnnotationCache()
    cache.store_batch([make_annotation("1")])
    cache.clear()
    assert len(cache) == 0
