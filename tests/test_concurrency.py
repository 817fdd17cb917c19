"""Tests for chunk() and map_limited()."""

import asyncio
import math

import pytest

from staticforge.concurrency import chunk, map_limited


# =============================================================================
# CHUNK
# =============================================================================


class TestChunk:
    """Tests for chunk()."""

    @pytest.mark.parametrize("length", [0, 1, 349, 350, 351, 700, 720, 1050])
    def test_chunk_sizes(self, length):
        """ceil(L/350) chunks, all full except possibly the last."""
        items = list(range(length))
        chunks = chunk(items, 350)

        assert len(chunks) == math.ceil(length / 350)
        for group in chunks[:-1]:
            assert len(group) == 350
        if chunks:
            expected_last = length % 350 or 350
            assert len(chunks[-1]) == expected_last

    def test_concatenation_restores_queue(self):
        """Joining chunks in order reproduces the input exactly."""
        items = [f"page-{i}" for i in range(803)]
        chunks = chunk(items, 25)
        assert [item for group in chunks for item in group] == items

    def test_accepts_any_sequence(self):
        """Tuples are chunked into lists."""
        assert chunk((1, 2, 3), 2) == [[1, 2], [3]]

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_size(self, size):
        with pytest.raises(ValueError, match="chunk size must be positive"):
            chunk([1, 2], size)


# =============================================================================
# MAP_LIMITED
# =============================================================================


class TestMapLimited:
    """Tests for map_limited()."""

    def test_never_exceeds_limit(self):
        """At most K calls are in flight at any instant."""
        in_flight = 0
        peak = 0
        seen = []

        async def work(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            seen.append(item)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item * 2

        results = asyncio.run(map_limited(range(10), work, 3))

        assert peak == 3
        assert sorted(seen) == list(range(10))
        assert results == [i * 2 for i in range(10)]

    def test_each_item_called_once(self):
        """Every item is processed exactly once when all succeed."""
        calls = []

        async def work(item):
            calls.append(item)
            await asyncio.sleep(0)

        asyncio.run(map_limited(list("abcdefg"), work, 4))
        assert sorted(calls) == list("abcdefg")

    def test_results_follow_submission_order(self):
        """Results align with inputs even when completion order differs."""

        async def work(item):
            await asyncio.sleep(0.03 - item * 0.01)
            return item

        assert asyncio.run(map_limited([0, 1, 2], work, 3)) == [0, 1, 2]

    def test_first_failure_stops_scheduling(self):
        """After a failure no further items are started and the same error is raised."""
        started = []
        error = RuntimeError("boom")

        async def work(item):
            started.append(item)
            if item == 0:
                raise error
            await asyncio.sleep(0.01)

        with pytest.raises(RuntimeError) as exc_info:
            asyncio.run(map_limited(range(10), work, 2))

        assert exc_info.value is error
        assert started == [0]

    def test_failure_mid_run_leaves_rest_unscheduled(self):
        """A failure after some successes still stops the queue."""
        started = []

        async def work(item):
            started.append(item)
            await asyncio.sleep(0.01)
            if item == 2:
                raise ValueError("bad item")

        with pytest.raises(ValueError, match="bad item"):
            asyncio.run(map_limited(range(20), work, 1))

        assert started == [0, 1, 2]

    def test_empty_input(self):
        async def work(item):
            raise AssertionError("should not be called")

        assert asyncio.run(map_limited([], work, 4)) == []

    def test_limit_larger_than_items(self):
        """Only as many runners as items are needed."""

        async def work(item):
            await asyncio.sleep(0)
            return item

        assert asyncio.run(map_limited([1, 2], work, 16)) == [1, 2]

    def test_rejects_zero_concurrency(self):
        async def work(item):
            return item

        with pytest.raises(ValueError, match="concurrency must be at least 1"):
            asyncio.run(map_limited([1], work, 0))
