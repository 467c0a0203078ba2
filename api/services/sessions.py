"""
In-memory registry of scan sessions for the HTTP API.

Nothing is persisted: sessions are pruned once they have been idle for a
retention period, whether finished or abandoned. Recognition runs as a background
asyncio task per session; task references are kept so they are not
garbage collected mid-run.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional, Set

from src.ocr import BaseOCRService, TesseractOCRService
from src.scan import ScanSession, ScanState

logger = logging.getLogger(__name__)

# Idle sessions are kept this long so clients can still read the outcome
DEFAULT_RETENTION_MINUTES = 30


class SessionRegistry:
    """Holds scan sessions by id and runs them in the background."""

    def __init__(self, retention_minutes: int = DEFAULT_RETENTION_MINUTES):
        self.retention_minutes = retention_minutes
        self._sessions: Dict[str, ScanSession] = {}
        self._tasks: Set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: ScanSession) -> ScanSession:
        self.prune()
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[ScanSession]:
        return self._sessions.get(session_id)

    def start(self, session: ScanSession) -> asyncio.Task:
        """Run the session's recognition as a background task."""
        task = asyncio.create_task(self._run(session))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, session: ScanSession) -> None:
        try:
            await session.run()
        except Exception as e:
            logger.exception(f"Scan {session.session_id}: background run failed: {e}")

    def prune(self, now: Optional[datetime] = None) -> int:
        """
        Drop sessions with no activity within the retention period.

        Abandoned sessions (e.g. a reading never confirmed) are dismissed
        before removal. Sessions still recognizing are always kept.

        Returns:
            Number of sessions removed
        """
        cutoff = (now or datetime.utcnow()) - timedelta(minutes=self.retention_minutes)
        stale = [
            sid for sid, session in self._sessions.items()
            if session.state is not ScanState.RECOGNIZING and session.updated_at < cutoff
        ]
        for sid in stale:
            session = self._sessions.pop(sid)
            if not session.is_terminal:
                logger.info(f"Scan {sid}: abandoned while {session.state.value}, dismissing")
                session.dismiss()

        if stale:
            logger.info(f"Cleanup: removed {len(stale)} stale scan sessions")
        return len(stale)


# Global registry instance
_registry = SessionRegistry()
_engine: Optional[BaseOCRService] = None


def get_registry() -> SessionRegistry:
    """Session registry (dependency injection for FastAPI)"""
    return _registry


def get_engine() -> BaseOCRService:
    """OCR engine (dependency injection for FastAPI)"""
    global _engine
    if _engine is None:
        _engine = TesseractOCRService()
    return _engine
