"""FormSessionRegistry: singleton registry of open form sessions.

Sessions are torn down on explicit close or once they sit idle longer than
the configured TTL.
"""

import asyncio
import logging
import time
from typing import Optional

from osca_forms.services.form_session import FormSession

logger = logging.getLogger(__name__)


class FormSessionRegistry:
    _instance: Optional["FormSessionRegistry"] = None

    def __init__(self):
        self._sessions: dict[str, FormSession] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

    @classmethod
    def get_instance(cls) -> "FormSessionRegistry":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def register(self, session: FormSession) -> None:
        async with self._lock:
            self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[FormSession]:
        session = self._sessions.get(session_id)
        if session:
            session.touch()
        return session

    async def remove(self, session_id: str) -> Optional[FormSession]:
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def close_session(self, session_id: str) -> bool:
        """Tear down a session and drop it from the registry."""
        session = await self.remove(session_id)
        if not session:
            return False
        session.teardown()
        logger.info(f"Closed form session {session_id}")
        return True

    async def start_cleanup_loop(self, timeout_seconds: int = 1800) -> None:
        """Background task that closes sessions idle for more than timeout_seconds."""
        while True:
            await asyncio.sleep(60)
            await self.close_stale(timeout_seconds)

    async def close_stale(self, timeout_seconds: int) -> list[str]:
        now = time.time()
        async with self._lock:
            stale = [sid for sid, session in self._sessions.items()
                     if now - session.touched_at > timeout_seconds]
        for sid in stale:
            await self.close_session(sid)
        return stale

    def start_background_cleanup(self, timeout_seconds: int = 1800) -> None:
        """Start the cleanup loop as a background task."""
        if self._cleanup_task is None or self._cleanup_task.done():
            loop = asyncio.get_event_loop()
            self._cleanup_task = loop.create_task(
                self.start_cleanup_loop(timeout_seconds)
            )

    @property
    def active_count(self) -> int:
        return len(self._sessions)
