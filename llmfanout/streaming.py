"""
Incremental delivery of dispatch results as newline-delimited JSON.

The relay pushes a frame as soon as any provider has something to report
instead of waiting for the slowest one. Each dispatched provider yields one
``partial`` frame once its model is known, then exactly one terminal frame.
"""
import asyncio
import codecs
import json
import logging
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Set, Union

from .dispatcher import Dispatcher, EnabledProvider
from .types import Attachment, DispatchResult, StreamFrame, Turn
from .utils import normalize_messages, valid_attachments

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response"

# Provider tasks outlive a detached consumer; hold references until they finish.
_background_tasks: Set[asyncio.Task] = set()


def make_frame(result: DispatchResult) -> StreamFrame:
    return {"type": "result", "result": result}


def encode_frame(frame: StreamFrame) -> bytes:
    """Serialize one frame as a single compact JSON line."""
    return (json.dumps(frame, ensure_ascii=False, separators=(",", ":")) + "\n").encode("utf-8")


class StreamingRelay:
    """
    Wraps a ``Dispatcher`` so results reach the caller as they become available.
    """

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher

    def open(
        self,
        messages: Any,
        providers: Any,
        attachments: Any = None,
    ) -> AsyncIterator[StreamFrame]:
        """
        Validate the request and start streaming.

        Configuration is checked before the first frame so the caller can
        still answer with a plain error response.

        Returns:
            AsyncIterator[StreamFrame]: Frames in availability order. Closing
            it early stops delivery; in-flight provider calls finish in the
            background and their results are dropped.

        Raises:
            ConfigurationError: If no provider is enabled.
        """
        targets = self.dispatcher.enabled_providers(providers)
        turns = normalize_messages(messages)
        images = valid_attachments(attachments)
        return self._relay(targets, turns, images)

    async def _relay(
        self,
        targets: List[EnabledProvider],
        turns: List[Turn],
        attachments: List[Attachment],
    ) -> AsyncIterator[StreamFrame]:
        queue: asyncio.Queue = asyncio.Queue()
        detached = asyncio.Event()

        async def push_partial(result: DispatchResult) -> None:
            if not detached.is_set():
                queue.put_nowait((result, False))

        async def run(target: EnabledProvider) -> None:
            result = await self.dispatcher.run_provider(
                target, turns, attachments, on_partial=push_partial
            )
            if detached.is_set():
                logger.debug("Discarding %s result, consumer detached", target.name)
                return
            queue.put_nowait((result, True))

        for target in targets:
            task = asyncio.create_task(run(target))
            _background_tasks.add(task)
            task.add_done_callback(_background_tasks.discard)

        remaining = len(targets)
        try:
            while remaining:
                result, final = await queue.get()
                if final:
                    remaining -= 1
                yield make_frame(result)
        finally:
            if remaining:
                logger.info("Stream closed with %d provider(s) still running", remaining)
            detached.set()


class StreamCollector:
    """
    Consumer-side view of a frame stream.

    Keeps the latest result per provider so a terminal frame supersedes any
    earlier partials regardless of arrival order. Accepts raw NDJSON chunks
    split at arbitrary byte boundaries.
    """

    def __init__(self):
        self._latest: Dict[str, DispatchResult] = {}
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")()

    def add(self, frame: Any) -> Optional[DispatchResult]:
        """
        Record one decoded frame.

        Returns:
            Optional[DispatchResult]: The stored result, or None if the frame
            is not a result frame.
        """
        if not isinstance(frame, dict) or frame.get("type") != "result":
            return None
        result = frame.get("result")
        if not isinstance(result, dict) or not result.get("provider"):
            return None
        self._latest[result["provider"]] = result
        return result

    def feed(self, chunk: Union[bytes, str]) -> List[DispatchResult]:
        """
        Parse every complete line in ``chunk`` (plus any buffered remainder).

        Returns:
            List[DispatchResult]: Results recorded from this chunk.
        """
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse(lines)

    def close(self) -> List[DispatchResult]:
        """Flush a trailing line that had no newline."""
        lines, self._buffer = [self._buffer + self._decoder.decode(b"", final=True)], ""
        return self._parse(lines)

    def _parse(self, lines: Iterable[str]) -> List[DispatchResult]:
        recorded = []
        for line in lines:
            if not line.strip():
                continue
            try:
                frame = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping malformed stream line: %.80s", line)
                continue
            result = self.add(frame)
            if result is not None:
                recorded.append(result)
        return recorded

    def latest(self, provider: str) -> Optional[DispatchResult]:
        return self._latest.get(provider)

    def results(self, expected: Iterable[str] = ()) -> List[DispatchResult]:
        """
        Final view of the stream after it has closed.

        Providers whose last frame is still partial, and expected providers
        that never produced a frame, are reported as failed with
        ``"No response"``.

        Args:
            expected (Iterable[str]): Provider ids the request enabled.

        Returns:
            List[DispatchResult]: One terminal result per provider, in first
            arrival order followed by silent expected providers.
        """
        out: List[DispatchResult] = []
        for provider, result in self._latest.items():
            if result.get("partial"):
                out.append({
                    "ok": False,
                    "provider": provider,
                    "model": result.get("model", ""),
                    "error": NO_RESPONSE,
                    "ms": result.get("ms", 0),
                })
            else:
                out.append(result)

        for provider in expected:
            if provider not in self._latest:
                out.append({
                    "ok": False,
                    "provider": provider,
                    "model": "",
                    "error": NO_RESPONSE,
                    "ms": 0,
                })
        return out
