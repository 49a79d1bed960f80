"""Unit tests for streaming aggregation."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import Mock

import pytest

from gravity_bridge.envelope.states import ChatState
from gravity_bridge.envelope.streaming import (
    COMPLETION_TEXT,
    StreamAggregator,
    StreamChunk,
    aggregate,
)
from gravity_bridge.errors import UpstreamStreamError


async def _fragments(*parts: str, fail: Exception | None = None) -> AsyncIterator[str]:
    for part in parts:
        yield part
    if fail is not None:
        raise fail


@pytest.mark.asyncio
async def test_aggregate_builds_chunks_and_completion() -> None:
    result = await aggregate(_fragments("Hel", "lo", " world"), "m1")

    assert result.full_text == "Hello world"
    assert result.fragment_count == 3
    assert [c.text for c in result.chunks] == ["Hel", "lo", " world", COMPLETION_TEXT]
    assert [c.chunk_index for c in result.chunks] == [0, 1, 2, 3]
    assert [c.state for c in result.chunks] == [
        ChatState.RESPONDING,
        ChatState.RESPONDING,
        ChatState.RESPONDING,
        ChatState.COMPLETE,
    ]
    assert all(c.model == "m1" for c in result.chunks)


@pytest.mark.asyncio
async def test_aggregate_drops_empty_fragments() -> None:
    result = await aggregate(_fragments("", "a", "", "b"), "m1")

    assert result.fragment_count == 2
    assert [c.chunk_index for c in result.chunks] == [0, 1, 2]
    assert result.chunks[-1].chunk_index == result.fragment_count


@pytest.mark.asyncio
async def test_aggregate_empty_stream_yields_completion_only() -> None:
    result = await aggregate(_fragments(), "m1")

    assert result.full_text == ""
    assert len(result.chunks) == 1
    assert result.chunks[0].chunk_index == 0
    assert result.chunks[0].text == COMPLETION_TEXT


@pytest.mark.asyncio
async def test_aggregate_applies_override_to_every_chunk() -> None:
    result = await aggregate(_fragments("a", "b"), "m1", ChatState.THINKING, "Thinking...")

    assert {c.state for c in result.chunks} == {ChatState.THINKING}
    assert all(c.progress_message == "Thinking..." for c in result.chunks)
    assert result.chunks[0].to_json()["progressMessage"] == "Thinking..."


@pytest.mark.asyncio
async def test_aggregate_accepts_plain_iterables() -> None:
    result = await aggregate(["x", "y"], "m1")

    assert result.full_text == "xy"


@pytest.mark.asyncio
async def test_aggregate_timestamps_are_non_decreasing() -> None:
    result = await aggregate(_fragments("a", "b", "c"), "m1")

    stamps = [c.timestamp for c in result.chunks]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_upstream_failure_carries_partial_result() -> None:
    log = Mock()

    with pytest.raises(UpstreamStreamError) as exc_info:
        await aggregate(_fragments("a", "b", fail=ConnectionError("reset")), "m1", log=log)

    partial = exc_info.value.partial
    assert partial.full_text == "ab"
    assert partial.fragment_count == 2
    assert all(c.text != COMPLETION_TEXT for c in partial.chunks)
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    log.warning.assert_called_once()


@pytest.mark.asyncio
async def test_on_chunk_sees_chunks_in_order() -> None:
    seen: list[StreamChunk] = []

    async def on_chunk(chunk: StreamChunk) -> None:
        seen.append(chunk)

    result = await aggregate(_fragments("a", "b"), "m1", on_chunk=on_chunk)

    assert seen == result.chunks


@pytest.mark.asyncio
async def test_on_chunk_errors_are_not_upstream_errors() -> None:
    def on_chunk(chunk: StreamChunk) -> None:
        raise KeyError("sink")

    with pytest.raises(KeyError):
        await aggregate(_fragments("a"), "m1", on_chunk=on_chunk)


def test_aggregator_cannot_finish_twice() -> None:
    aggregator = StreamAggregator("m1")
    aggregator.feed("a")
    aggregator.finish()

    assert aggregator.finished
    with pytest.raises(RuntimeError):
        aggregator.finish()
    with pytest.raises(RuntimeError):
        aggregator.feed("b")


def test_aggregator_feed_returns_none_for_empty_fragment() -> None:
    aggregator = StreamAggregator("m1")

    assert aggregator.feed("") is None
    assert aggregator.feed(None) is None
    assert aggregator.fragment_count == 0


def test_aggregators_are_independent() -> None:
    first = StreamAggregator("m1")
    second = StreamAggregator("m2")
    first.feed("one")
    second.feed("two")

    assert first.full_text == "one"
    assert second.full_text == "two"
    assert second.snapshot().chunks[0].chunk_index == 0


@pytest.mark.asyncio
async def test_aggregate_is_deterministic() -> None:
    first = await aggregate(_fragments("Hel", "lo", "", " world"), "m1")
    second = await aggregate(_fragments("Hel", "lo", "", " world"), "m1")

    assert first.full_text == second.full_text
    assert first.fragment_count == second.fragment_count
    assert [(c.text, c.chunk_index, c.state) for c in first.chunks] == [
        (c.text, c.chunk_index, c.state) for c in second.chunks
    ]


@pytest.mark.asyncio
async def test_empty_fragment_between_text_is_skipped() -> None:
    result = await aggregate(_fragments("Hel", "lo", "", " world"), "m1")

    assert len(result.chunks) == 4
    assert result.fragment_count == 3
    assert result.full_text == "Hello world"
    assert result.chunks[-1].chunk_index == 3
    assert result.chunks[-1].text == COMPLETION_TEXT


@pytest.mark.asyncio
async def test_single_fragment_chunk_records() -> None:
    result = await aggregate(_fragments("A"), "m1")

    records = [c.to_json() for c in result.chunks]
    for record in records:
        assert isinstance(record.pop("timestamp"), int)
    assert records == [
        {"model": "m1", "text": "A", "chunkIndex": 0, "state": "responding"},
        {"model": "m1", "text": " ", "chunkIndex": 1, "state": "complete"},
    ]
    assert result.full_text == "A"
