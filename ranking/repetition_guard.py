"""Keep recently used clips out of nearby segments."""

from __future__ import annotations

import logging
from typing import List, Optional

from models import Candidate
from storage import RepetitionWindow


logger = logging.getLogger(__name__)


class RepetitionGuard:
    """Selection and ordering on top of a session's repetition window."""

    def __init__(self, window: RepetitionWindow):
        self.window = window
        self.repeats_allowed = 0

    def is_blocked(self, identity: str, sequence_index: Optional[int] = None) -> bool:
        return self.window.is_blocked(identity, sequence_index)

    def select(self, ranked: List[Candidate], sequence_index: Optional[int] = None) -> Optional[Candidate]:
        if not ranked:
            return None
        for candidate in ranked:
            if not self.is_blocked(candidate.identity, sequence_index):
                return candidate
        self.repeats_allowed += 1
        logger.warning(
            f"All {len(ranked)} candidates were used recently; repeating '{ranked[0].identity}'"
        )
        return ranked[0]

    def filter_available(self, ranked: List[Candidate], sequence_index: Optional[int] = None) -> List[Candidate]:
        """Ranked list with recently used candidates moved to the end."""
        fresh = [c for c in ranked if not self.is_blocked(c.identity, sequence_index)]
        used = [c for c in ranked if self.is_blocked(c.identity, sequence_index)]
        if used and fresh:
            logger.info(f"Moved {len(used)} recently used candidates behind {len(fresh)} fresh ones")
        elif used:
            self.repeats_allowed += 1
            logger.warning(f"All {len(used)} candidates were used recently; allowing a repeat")
        return fresh + used

    def mark_used(self, identity: str, sequence_index: Optional[int] = None) -> None:
        self.window.record(identity, sequence_index)
