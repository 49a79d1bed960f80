"""Streaming aggregation.

Turns the text fragments of a model-provider stream into indexed chunk
records plus one completion chunk, while accumulating the full text.

Buffering rules:
- Empty fragments are dropped and do not consume an index.
- Chunk indices follow arrival order.
- The completion chunk carries a single space and `chunkIndex == fragment_count`.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from gravity_bridge.envelope.model import now_ms
from gravity_bridge.envelope.states import ChatState, StreamPhase, resolve_state
from gravity_bridge.errors import UpstreamStreamError

COMPLETION_TEXT = " "

logger = logging.getLogger(__name__)

ChunkCallback = Callable[["StreamChunk"], Any]


@dataclass(frozen=True, slots=True)
class StreamChunk:
    model: str
    text: str
    chunk_index: int
    timestamp: int
    state: ChatState
    progress_message: str | None = None

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "model": self.model,
            "text": self.text,
            "chunkIndex": self.chunk_index,
            "timestamp": self.timestamp,
            "state": self.state.value,
        }
        if self.progress_message:
            out["progressMessage"] = self.progress_message
        return out


@dataclass(frozen=True, slots=True)
class StreamResult:
    chunks: list[StreamChunk] = field(default_factory=list)
    full_text: str = ""
    fragment_count: int = 0


class StreamAggregator:
    """Incremental aggregator for a single stream.

    Call `feed()` for every fragment and `finish()` once the source is
    exhausted. `aggregate()` drives both for a complete fragment source.
    """

    def __init__(
        self,
        model: str,
        state_override: ChatState | str | None = None,
        progress_message: str | None = None,
    ) -> None:
        self.model = model
        self._override = ChatState(state_override) if state_override else None
        self._progress_message = progress_message or None
        self._chunks: list[StreamChunk] = []
        self._parts: list[str] = []
        self._finished = False

    @property
    def fragment_count(self) -> int:
        return len(self._parts)

    @property
    def full_text(self) -> str:
        return "".join(self._parts)

    @property
    def finished(self) -> bool:
        return self._finished

    def _emit(self, text: str, index: int, phase: StreamPhase) -> StreamChunk:
        chunk = StreamChunk(
            model=self.model,
            text=text,
            chunk_index=index,
            timestamp=now_ms(),
            state=resolve_state(self._override, phase),
            progress_message=self._progress_message,
        )
        self._chunks.append(chunk)
        return chunk

    def feed(self, fragment: str | None) -> StreamChunk | None:
        """Record one fragment. Returns the new chunk, or None if it was empty."""

        if self._finished:
            raise RuntimeError("Stream already finished")
        if not fragment:
            return None
        self._parts.append(fragment)
        return self._emit(fragment, len(self._parts) - 1, StreamPhase.STREAMING_FRAGMENT)

    def finish(self) -> StreamChunk:
        """Append and return the completion chunk."""

        if self._finished:
            raise RuntimeError("Stream already finished")
        self._finished = True
        return self._emit(COMPLETION_TEXT, self.fragment_count, StreamPhase.STREAMING_FINAL)

    def snapshot(self) -> StreamResult:
        return StreamResult(
            chunks=list(self._chunks),
            full_text=self.full_text,
            fragment_count=self.fragment_count,
        )


async def _notify(on_chunk: ChunkCallback | None, chunk: StreamChunk | None) -> None:
    if on_chunk is None or chunk is None:
        return
    result = on_chunk(chunk)
    if inspect.isawaitable(result):
        await result


async def aggregate(
    fragments: AsyncIterable[str] | Iterable[str],
    model: str,
    state_override: ChatState | str | None = None,
    progress_message: str | None = None,
    *,
    on_chunk: ChunkCallback | None = None,
    log: logging.Logger | None = None,
) -> StreamResult:
    """Consume `fragments` and return the chunk records, full text and count.

    Args:
        fragments: Text deltas in arrival order. Async or plain iterable.
        model: Model identifier copied onto every chunk.
        state_override: State used for every chunk, including the completion.
        progress_message: Optional message attached to every chunk.
        on_chunk: Called (and awaited, if it returns an awaitable) with each
            chunk as soon as it is produced. Its errors propagate unchanged.
        log: Logger used to report a partial stream. Defaults to this module's.

    Raises:
        UpstreamStreamError: If the fragment source fails. `partial` holds
            the chunks produced so far, without a completion chunk.
    """

    aggregator = StreamAggregator(model, state_override, progress_message)

    def _failed(e: Exception) -> UpstreamStreamError:
        partial = aggregator.snapshot()
        (log or logger).warning(
            "Upstream stream failed after %d fragments: %s",
            partial.fragment_count,
            e,
            extra={"model": model, "fragment_count": partial.fragment_count},
        )
        return UpstreamStreamError(f"Upstream stream failed: {e}", partial=partial)

    if isinstance(fragments, AsyncIterable):
        async_iter = aiter(fragments)
        while True:
            try:
                fragment = await anext(async_iter)
            except StopAsyncIteration:
                break
            except Exception as e:
                raise _failed(e) from e
            await _notify(on_chunk, aggregator.feed(fragment))
    else:
        sync_iter = iter(fragments)
        while True:
            try:
                fragment = next(sync_iter)
            except StopIteration:
                break
            except Exception as e:
                raise _failed(e) from e
            await _notify(on_chunk, aggregator.feed(fragment))

    await _notify(on_chunk, aggregator.finish())
    return aggregator.snapshot()
