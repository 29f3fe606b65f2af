"""
Persistence behind the evaluator: daily counters, dedupe index, decision log.

The evaluator only ever talks to the five PolicyStore methods. InMemoryStore
is for tests and dry runs; SqlStore keeps the same contract in SQLAlchemy
tables. Concurrency safety belongs to the store: SqlStore bumps counters and
dedupe entries with a single INSERT ... ON CONFLICT DO UPDATE on SQLite and
PostgreSQL, so two writers never read the same count and both write it back.

A fingerprint is a duplicate while its first publish is inside the dedupe
window. Republishing bumps last_seen and count but does not move the window.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import desc, insert, update
from sqlalchemy.dialects import postgresql, sqlite

from publish_gate.database import init_db, session_scope
from publish_gate.models import ActionLog, DedupeEntry, RateCounter
from publish_gate.schemas import (
    TEXT_PREVIEW_CHARS,
    ActionKind,
    Decision,
    Platform,
    to_naive_utc,
    utcnow,
)

Clock = Callable[[], datetime]

# Dialects with a native upsert
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _value(enum_or_str) -> str:
    return getattr(enum_or_str, "value", enum_or_str)


def _upsert(session, model, values: Dict[str, Any], key: Sequence[str], on_conflict: Dict[str, Any]) -> None:
    """
    Insert values as a new row, or apply on_conflict to the row already holding key.

    Other dialects get UPDATE first and INSERT only when no row matched; the
    unique constraint still rejects a second concurrent INSERT there.
    """
    dialect_insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
    if dialect_insert is not None:
        stmt = dialect_insert(model).values(**values).on_conflict_do_update(
            index_elements=list(key), set_=on_conflict,
        )
        session.execute(stmt)
        return

    match = [getattr(model, column) == values[column] for column in key]
    result = session.execute(
        update(model).where(*match).values(**on_conflict).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.execute(insert(model).values(**values))


class PolicyStore(Protocol):
    """What the evaluator needs from persistence."""

    def get_today_count(self, platform: Platform, action_kind: ActionKind) -> int: ...

    def is_duplicate(self, fingerprint: str, window_days: int) -> bool: ...

    def increment_counter(self, platform: Platform, action_kind: ActionKind) -> None: ...

    def add_fingerprint(self, fingerprint: str, platform: Platform) -> None: ...

    def log_action(
        self,
        platform: Platform,
        action_kind: ActionKind,
        fingerprint: str,
        decision: Decision,
        text_preview: Optional[str] = None,
    ) -> None: ...


class InMemoryStore:
    """
    Dict-backed store. Counters are per UTC day; a fingerprint is a duplicate
    while its first publish is inside the dedupe window.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utcnow
        self.counters: Dict[Tuple[str, str, str], int] = {}
        self.fingerprints: Dict[str, Dict[str, Any]] = {}
        self.actions: List[Dict[str, Any]] = []

    def _today(self) -> str:
        return self._clock().astimezone(timezone.utc).date().isoformat()

    def get_today_count(self, platform, action_kind) -> int:
        return self.counters.get((self._today(), _value(platform), _value(action_kind)), 0)

    def is_duplicate(self, fingerprint, window_days) -> bool:
        entry = self.fingerprints.get(fingerprint)
        if entry is None:
            return False
        return entry["first_seen"] > self._clock() - timedelta(days=window_days)

    def increment_counter(self, platform, action_kind) -> None:
        key = (self._today(), _value(platform), _value(action_kind))
        self.counters[key] = self.counters.get(key, 0) + 1

    def add_fingerprint(self, fingerprint, platform) -> None:
        now = self._clock()
        entry = self.fingerprints.get(fingerprint)
        if entry is None:
            self.fingerprints[fingerprint] = {
                "platform": _value(platform), "first_seen": now, "last_seen": now, "count": 1,
            }
        else:
            entry["last_seen"] = now
            entry["count"] += 1

    def log_action(self, platform, action_kind, fingerprint, decision, text_preview=None) -> None:
        self.actions.append({
            "ts": self._clock(),
            "platform": _value(platform),
            "action_kind": _value(action_kind),
            "fingerprint": fingerprint,
            "decision": decision,
            "text_preview": text_preview[:TEXT_PREVIEW_CHARS] if text_preview else None,
        })


class SqlStore:
    """
    SQLAlchemy-backed store using the module-level engine in publish_gate.database.

    Timestamps are stored as naive UTC (SQLite doesn't store tz info).
    """

    def __init__(self, clock: Optional[Clock] = None, create_tables: bool = True):
        self._clock = clock or utcnow
        if create_tables:
            init_db()

    def _now(self) -> datetime:
        """Current time as naive UTC."""
        return to_naive_utc(self._clock())

    def _today(self) -> str:
        return self._now().date().isoformat()

    def get_today_count(self, platform, action_kind) -> int:
        with session_scope() as session:
            row = (
                session.query(RateCounter)
                .filter(
                    RateCounter.date == self._today(),
                    RateCounter.platform == _value(platform),
                    RateCounter.action_kind == _value(action_kind),
                )
                .first()
            )
            return row.count if row else 0

    def is_duplicate(self, fingerprint, window_days) -> bool:
        cutoff = self._now() - timedelta(days=window_days)
        with session_scope() as session:
            existing = (
                session.query(DedupeEntry.id)
                .filter(
                    DedupeEntry.fingerprint == fingerprint,
                    DedupeEntry.first_seen > cutoff,
                )
                .first()
            )
            return existing is not None

    def increment_counter(self, platform, action_kind) -> None:
        with session_scope() as session:
            _upsert(
                session,
                RateCounter,
                values={
                    "date": self._today(),
                    "platform": _value(platform),
                    "action_kind": _value(action_kind),
                    "count": 1,
                },
                key=("date", "platform", "action_kind"),
                on_conflict={"count": RateCounter.count + 1},
            )

    def add_fingerprint(self, fingerprint, platform) -> None:
        now = self._now()
        with session_scope() as session:
            _upsert(
                session,
                DedupeEntry,
                values={
                    "fingerprint": fingerprint,
                    "platform": _value(platform),
                    "first_seen": now,
                    "last_seen": now,
                    "count": 1,
                },
                key=("fingerprint",),
                on_conflict={"last_seen": now, "count": DedupeEntry.count + 1},
            )

    def log_action(self, platform, action_kind, fingerprint, decision, text_preview=None) -> None:
        with session_scope() as session:
            session.add(ActionLog(
                ts=self._now(),
                platform=_value(platform),
                action_kind=_value(action_kind),
                fingerprint=fingerprint,
                allow=decision.allow,
                risk_score=decision.risk_score,
                reason_codes_json=json.dumps([_value(c) for c in decision.reason_codes]),
                text_preview=text_preview[:TEXT_PREVIEW_CHARS] if text_preview else None,
            ))

    def get_recent_actions(self, platform: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Most recent logged decisions, newest first.

        Args:
            platform: Only this platform (all platforms if None)
            limit: Maximum rows to return
        """
        with session_scope() as session:
            query = session.query(ActionLog)
            if platform is not None:
                query = query.filter(ActionLog.platform == _value(platform))
            rows = query.order_by(desc(ActionLog.ts), desc(ActionLog.id)).limit(limit).all()
            return [row.to_dict() for row in rows]

    def cleanup(self, retention_days: int = 30) -> Dict[str, int]:
        """
        Delete rows older than retention_days. Dedupe entries age from first_seen.

        Returns:
            {"actions_log": N, "dedupe_index": N, "rate_counters": N} rows deleted
        """
        cutoff = self._now() - timedelta(days=retention_days)
        with session_scope() as session:
            deleted_actions = (
                session.query(ActionLog)
                .filter(ActionLog.ts < cutoff)
                .delete(synchronize_session=False)
            )
            deleted_dedupe = (
                session.query(DedupeEntry)
                .filter(DedupeEntry.first_seen < cutoff)
                .delete(synchronize_session=False)
            )
            deleted_counters = (
                session.query(RateCounter)
                .filter(RateCounter.date < cutoff.date().isoformat())
                .delete(synchronize_session=False)
            )
        return {
            "actions_log": deleted_actions,
            "dedupe_index": deleted_dedupe,
            "rate_counters": deleted_counters,
        }
