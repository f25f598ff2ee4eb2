"""
Use case: Confirm a stored pattern after external validation.

Input: pattern_id
Output: Pattern (status ``confirmed``)
Side effects: Updates the pattern's status in the store.
Failure cases: PatternNotFoundError, PatternLifecycleError, PersistenceError.
"""

import logging
from datetime import datetime
from typing import Callable

from app.domain.analytics.entities import Pattern, utcnow
from app.domain.analytics.errors import PatternNotFoundError
from app.domain.analytics.ports import PatternStore

logger = logging.getLogger(__name__)


class ConfirmPatternUseCase:
    def __init__(
        self, pattern_store: PatternStore, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._store = pattern_store
        self._clock = clock

    def execute(self, pattern_id: int) -> Pattern:
        pattern = self._store.confirm_pattern(pattern_id, self._clock())
        if pattern is None:
            raise PatternNotFoundError(pattern_id)
        logger.info("Pattern %d confirmed", pattern_id)
        return pattern
