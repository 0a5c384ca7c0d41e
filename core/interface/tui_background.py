"""Background execution for store calls, agent replies and editor sessions."""

import logging
import threading
from typing import Any, Callable, List, Optional

from .tui_events import AsyncResult

logger = logging.getLogger("tddpro.tui")

Post = Callable[[AsyncResult], None]


class BackgroundRunner:
    """Run work on daemon threads and post an AsyncResult when it finishes.

    `post` is expected to hop back onto the event loop (see `bind_loop`).
    """

    def __init__(self, post: Optional[Post] = None) -> None:
        self._post = post

    def bind(self, post: Post) -> None:
        self._post = post

    def bind_loop(self, loop, handler: Post) -> None:
        self._post = lambda result: loop.call_soon_threadsafe(handler, result)

    def submit(self, request_id: int, kind: str, fn: Callable[[], Any]) -> None:
        def worker() -> None:
            try:
                payload = fn()
            except Exception as exc:
                logger.warning("background %s #%s failed: %s", kind, request_id, exc)
                self._deliver(AsyncResult(request_id, kind, error=exc))
                return
            self._deliver(AsyncResult(request_id, kind, payload=payload))

        threading.Thread(target=worker, daemon=True).start()

    def _deliver(self, result: AsyncResult) -> None:
        if self._post is None:
            logger.warning("dropping %s #%s: no event loop bound", result.kind, result.request_id)
            return
        self._post(result)


class InlineRunner(BackgroundRunner):
    """Runs work synchronously; results are queued until `drain` is called."""

    def __init__(self, post: Optional[Post] = None) -> None:
        super().__init__(post)
        self.queue: List[AsyncResult] = []
        self.submitted: List[str] = []

    def submit(self, request_id: int, kind: str, fn: Callable[[], Any]) -> None:
        self.submitted.append(kind)
        try:
            payload = fn()
        except Exception as exc:
            self.queue.append(AsyncResult(request_id, kind, error=exc))
            return
        self.queue.append(AsyncResult(request_id, kind, payload=payload))

    def drain(self) -> int:
        count = 0
        while self.queue:
            self._deliver(self.queue.pop(0))
            count += 1
        return count


__all__ = ["BackgroundRunner", "InlineRunner"]
