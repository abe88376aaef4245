# src/focus_todo/core/session.py

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class SessionPhase(StrEnum):
    IDLE = "idle"
    WORK = "work"
    REST = "rest"


@dataclass(slots=True)
class WorkSession:
    """
    Boundary to the work/rest timer: only the current phase and session id.

    Tasks link to session_id while a work session runs.
    """

    phase: SessionPhase = SessionPhase.IDLE
    session_id: str | None = None

    @property
    def is_active(self) -> bool:
        return self.session_id is not None

    def start_work(self) -> str:
        self.session_id = uuid.uuid4().hex
        self.phase = SessionPhase.WORK
        logger.info("Work session started id=%s", self.session_id)
        return self.session_id

    def start_rest(self) -> None:
        if self.session_id is None:
            return
        self.phase = SessionPhase.REST

    def end(self) -> str | None:
        """Return to idle. Returns the id of the session that ended, if any."""
        ended = self.session_id
        self.session_id = None
        self.phase = SessionPhase.IDLE
        if ended:
            logger.info("Work session ended id=%s", ended)
        return ended
