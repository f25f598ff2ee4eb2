"""
Adapter: Volume pattern repository.

Implements PatternStore port.
Responsible for persisting detected patterns in the `volume_patterns`
table and driving their lifecycle (confirm, complete, invalidate).
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    and_,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError

from app.domain.analytics.entities import (
    Pattern,
    PatternStatus,
    PatternType,
)
from app.domain.analytics.errors import PersistenceError
from app.domain.analytics.ports import PatternStore

logger = logging.getLogger(__name__)

metadata = MetaData()

volume_patterns = Table(
    "volume_patterns",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("pool_hash", String(64), nullable=False, index=True),
    Column("pattern_type", String(32), nullable=False),
    Column("status", String(32), nullable=False, index=True),
    Column("strength", Float, nullable=False),
    Column("historical_success_rate", Float, nullable=False),
    Column("confidence", Float, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    Column("time_to_target_minutes", Float, nullable=False),
    Column("volume_target", Float, nullable=False),
    Column("detected_at", DateTime, nullable=False),
    Column("predicted_completion_at", DateTime, nullable=False, index=True),
    Column("confirmed_at", DateTime),
    Column("closed_at", DateTime),
)

_ACTIVE = (PatternStatus.DETECTED.value, PatternStatus.CONFIRMED.value)


def _to_db(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _row_to_pattern(row: Any) -> Pattern:
    return Pattern(
        pattern_type=PatternType(row["pattern_type"]),
        strength=row["strength"],
        historical_success_rate=row["historical_success_rate"],
        duration_minutes=row["duration_minutes"],
        time_to_target_minutes=row["time_to_target_minutes"],
        volume_target=row["volume_target"],
        status=PatternStatus(row["status"]),
        detected_at=_from_db(row["detected_at"]),
        pool_id=row["pool_hash"],
        pattern_id=row["id"],
    )


class PatternRepository(PatternStore):
    """SQLAlchemy implementation of the pattern store."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def ensure_tables(self) -> None:
        """Create the patterns table if it does not exist."""
        metadata.create_all(self._engine, tables=[volume_patterns])
        logger.info("volume_patterns table ready")

    def get_active_patterns(self, pool_id: str, now: datetime) -> list[Pattern]:
        """Fetch active patterns whose predicted window is still open.

        Args:
            pool_id: Pool hash.
            now: Reference time.

        Returns:
            Patterns ordered by confidence, then recency.
        """
        stmt = (
            select(volume_patterns)
            .where(
                and_(
                    volume_patterns.c.pool_hash == pool_id,
                    volume_patterns.c.status.in_(_ACTIVE),
                    volume_patterns.c.predicted_completion_at >= _to_db(now),
                )
            )
            .order_by(
                volume_patterns.c.confidence.desc(),
                volume_patterns.c.detected_at.desc(),
            )
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError("get_active_patterns", str(exc)) from exc
        return [_row_to_pattern(row) for row in rows]

    def store_pattern(self, pool_id: str, pattern: Pattern) -> Pattern:
        stmt = insert(volume_patterns).values(
            pool_hash=pool_id,
            pattern_type=pattern.pattern_type.value,
            status=pattern.status.value,
            strength=pattern.strength,
            historical_success_rate=pattern.historical_success_rate,
            confidence=pattern.confidence,
            duration_minutes=pattern.duration_minutes,
            time_to_target_minutes=pattern.time_to_target_minutes,
            volume_target=pattern.volume_target,
            detected_at=_to_db(pattern.detected_at),
            predicted_completion_at=_to_db(pattern.predicted_completion_at),
        )
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
                pattern_id = result.inserted_primary_key[0]
        except SQLAlchemyError as exc:
            raise PersistenceError("store_pattern", str(exc)) from exc

        logger.debug(
            "Stored %s pattern %s for pool %s",
            pattern.pattern_type.value,
            pattern_id,
            pool_id[:8],
        )
        return replace(pattern, pool_id=pool_id, pattern_id=pattern_id)

    def confirm_pattern(self, pattern_id: int, now: datetime) -> Optional[Pattern]:
        """Confirm an active pattern.

        Raises:
            PatternLifecycleError: The pattern is already closed.
        """
        try:
            with self._engine.begin() as conn:
                row = conn.execute(
                    select(volume_patterns).where(volume_patterns.c.id == pattern_id)
                ).mappings().first()
                if row is None:
                    return None
                confirmed = _row_to_pattern(row).confirm()
                conn.execute(
                    update(volume_patterns)
                    .where(volume_patterns.c.id == pattern_id)
                    .values(status=confirmed.status.value, confirmed_at=_to_db(now))
                )
        except SQLAlchemyError as exc:
            raise PersistenceError("confirm_pattern", str(exc)) from exc
        return confirmed

    def expire_patterns(self, now: datetime) -> int:
        elapsed = volume_patterns.c.predicted_completion_at < _to_db(now)
        try:
            with self._engine.begin() as conn:
                completed = conn.execute(
                    update(volume_patterns)
                    .where(
                        and_(
                            volume_patterns.c.status == PatternStatus.CONFIRMED.value,
                            elapsed,
                        )
                    )
                    .values(status=PatternStatus.COMPLETED.value, closed_at=_to_db(now))
                ).rowcount
                invalidated = conn.execute(
                    update(volume_patterns)
                    .where(
                        and_(
                            volume_patterns.c.status == PatternStatus.DETECTED.value,
                            elapsed,
                        )
                    )
                    .values(status=PatternStatus.INVALIDATED.value, closed_at=_to_db(now))
                ).rowcount
        except SQLAlchemyError as exc:
            raise PersistenceError("expire_patterns", str(exc)) from exc

        if completed or invalidated:
            logger.info(
                "Closed patterns: %d completed, %d invalidated", completed, invalidated
            )
        return (completed or 0) + (invalidated or 0)
