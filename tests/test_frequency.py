"""Unit tests for the in-memory frequency index."""

from blobcache.cache.frequency import FrequencyIndex, FrequencyRecord


class TestFrequencyRecords:
    """Test per-key access counting."""

    def test_touch_creates_record(self):
        """Test the first touch creates a record with count 1."""
        index = FrequencyIndex()

        assert index.touch("a.png") == 1
        assert index.get_record("a.png") == FrequencyRecord(key="a.png", access_count=1)
        assert "a.png" in index
        assert len(index) == 1

    def test_touch_increments(self):
        """Test later touches increment by one."""
        index = FrequencyIndex()
        index.touch("a.png")
        index.touch("a.png")

        assert index.touch("a.png") == 3
        assert index.access_count("a.png") == 3

    def test_untracked_key(self):
        """Test untracked keys have no record."""
        index = FrequencyIndex()
        assert index.get_record("missing.png") is None
        assert index.access_count("missing.png") is None

    def test_remove(self):
        """Test removing a record, including an untracked key."""
        index = FrequencyIndex()
        index.touch("a.png")

        index.remove("a.png")
        index.remove("never-tracked.png")

        assert "a.png" not in index
        assert len(index) == 0

    def test_clear_keeps_stats(self):
        """Test clear drops records but keeps counters."""
        index = FrequencyIndex()
        index.touch("a.png")
        index.record_cache_hit()

        index.clear()

        assert len(index) == 0
        assert index.get_stats()["cache_hits"] == 1

    def test_get_all_records_is_a_copy(self):
        """Test mutating returned records does not affect the index."""
        index = FrequencyIndex()
        index.touch("a.png")

        records = index.get_all_records()
        records["a.png"].access_count = 100

        assert index.access_count("a.png") == 1


class TestLeastFrequent:
    """Test selection of eviction candidates."""

    def test_empty_index(self):
        """Test an empty index has no candidates."""
        assert FrequencyIndex().least_frequent() == (None, [])

    def test_single_minimum(self):
        """Test the key with the lowest count is selected."""
        index = FrequencyIndex()
        index.touch("a.png")
        for _ in range(5):
            index.touch("b.png")

        assert index.least_frequent() == (1, ["a.png"])

    def test_all_tied_keys_selected(self):
        """Test every key sharing the minimum is returned."""
        index = FrequencyIndex()
        for key in ("a.png", "b.png", "c.png"):
            index.touch(key)
        index.touch("c.png")

        min_count, victims = index.least_frequent()

        assert min_count == 1
        assert sorted(victims) == ["a.png", "b.png"]


class TestStatistics:
    """Test hit, miss and eviction counters."""

    def test_counters(self):
        """Test counters accumulate."""
        index = FrequencyIndex()
        index.touch("a.png")
        index.record_cache_hit()
        index.record_cache_hit()
        index.record_cache_miss()
        index.record_evictions(3)

        stats = index.get_stats()

        assert stats == {
            "cache_hits": 2,
            "cache_misses": 1,
            "evictions": 3,
            "tracked_keys": 1,
        }
