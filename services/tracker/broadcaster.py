"""Real-time fan-out of stats snapshots to connected observers."""
import asyncio
import logging
from typing import Callable, Dict, Optional, Set

from .metrics import broadcasts_sent, observers_connected, observers_dropped
from .stats import stats_message

logger = logging.getLogger(__name__)


class ObserverSession:
    """One connected observer: a websocket, its pending messages and its sender task."""

    def __init__(self, websocket, max_queue: int):
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.task: Optional[asyncio.Task] = None
        self.closed = False

    def offer(self, message: Dict) -> bool:
        """Queue a message without blocking. False if closed or full."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            return False


class Broadcaster:
    """
    Tracks observer sessions and pushes stats to them.

    Messages are queued per session and written by a dedicated task, so a
    slow observer never holds up a mutation or another observer. Sessions
    that fall behind or fail a send are dropped; they get a fresh snapshot
    when they reconnect.
    """

    def __init__(self, stats_source: Callable[[], Dict[str, int]], max_queue: int = 256):
        self.stats_source = stats_source
        self.max_queue = max_queue
        self._sessions: Set[ObserverSession] = set()
        self._closers: Set[asyncio.Task] = set()

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def connect(self, websocket) -> ObserverSession:
        """Register an accepted websocket and queue the current snapshot for it."""
        session = ObserverSession(websocket, self.max_queue)
        session.offer(stats_message(self.stats_source()))
        self._sessions.add(session)
        session.task = asyncio.create_task(self._sender(session))
        observers_connected.set(len(self._sessions))
        logger.info(f"Observer connected ({len(self._sessions)} active)")
        return session

    def on_mutation(self) -> Dict:
        """Recompute stats once and queue the snapshot on every open session."""
        message = stats_message(self.stats_source())
        for session in list(self._sessions):
            if not session.offer(message):
                logger.warning("Observer queue full, dropping session")
                observers_dropped.labels(reason="queue_full").inc()
                self._drop(session)
        broadcasts_sent.inc()
        return message

    async def disconnect(self, session: ObserverSession) -> None:
        """Remove a session. Safe to call more than once."""
        self._discard(session)
        task = session.task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def close(self) -> None:
        """Disconnect every session."""
        for session in list(self._sessions):
            await self.disconnect(session)
        for task in list(self._closers):
            task.cancel()

    async def _sender(self, session: ObserverSession) -> None:
        while True:
            message = await session.queue.get()
            try:
                await session.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send stats to observer: {e}")
                observers_dropped.labels(reason="send_failed").inc()
                self._discard(session)
                return

    def _discard(self, session: ObserverSession) -> bool:
        session.closed = True
        if session not in self._sessions:
            return False
        self._sessions.discard(session)
        observers_connected.set(len(self._sessions))
        logger.info(f"Observer disconnected ({len(self._sessions)} active)")
        return True

    def _drop(self, session: ObserverSession) -> None:
        if not self._discard(session):
            return
        if session.task is not None:
            session.task.cancel()
        closer = asyncio.create_task(self._close_socket(session))
        self._closers.add(closer)
        closer.add_done_callback(self._closers.discard)

    async def _close_socket(self, session: ObserverSession) -> None:
        try:
            await session.websocket.close(code=1013)
        except Exception as e:
            logger.debug(f"Error closing dropped observer: {e}")
