import json

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import declarative_base

from publish_gate.schemas import to_naive_utc, utcnow

Base = declarative_base()


def _utcnow():
    """Return current UTC time as a naive datetime (SQLite doesn't store tz info)."""
    return to_naive_utc(utcnow())


class ActionLog(Base):
    """One row per policy decision, allowed or not."""
    __tablename__ = "actions_log"

    id = Column(Integer, primary_key=True)
    ts = Column(DateTime, default=_utcnow, index=True)
    platform = Column(String, nullable=False, index=True)
    action_kind = Column(String, nullable=False)
    fingerprint = Column(String(64), nullable=False, index=True)
    allow = Column(Boolean, nullable=False)
    risk_score = Column(Integer, nullable=False)
    reason_codes_json = Column(Text, nullable=False)
    text_preview = Column(String(200), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "ts": self.ts.isoformat() if self.ts else None,
            "platform": self.platform,
            "action_kind": self.action_kind,
            "fingerprint": self.fingerprint,
            "allow": self.allow,
            "risk_score": self.risk_score,
            "reason_codes": json.loads(self.reason_codes_json or "[]"),
            "text_preview": self.text_preview,
        }


class RateCounter(Base):
    __tablename__ = "rate_counters"
    __table_args__ = (UniqueConstraint("date", "platform", "action_kind"),)

    id = Column(Integer, primary_key=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD, UTC
    platform = Column(String, nullable=False)
    action_kind = Column(String, nullable=False)
    count = Column(Integer, nullable=False, default=0)


class DedupeEntry(Base):
    __tablename__ = "dedupe_index"

    id = Column(Integer, primary_key=True)
    fingerprint = Column(String(64), nullable=False, unique=True)
    first_seen = Column(DateTime, nullable=False, default=_utcnow, index=True)
    last_seen = Column(DateTime, nullable=False, default=_utcnow)
    platform = Column(String, nullable=False)
    count = Column(Integer, nullable=False, default=1)
