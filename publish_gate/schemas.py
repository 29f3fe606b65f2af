"""
Value types shared by every part of the gate.

CandidateAction is what callers hand in, Decision is what comes back.
Both are frozen dataclasses; a Decision is built once per evaluate() call
and never touched again.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class Platform(str, Enum):
    X = "x"
    REDDIT = "reddit"
    TELEGRAM = "telegram"
    GITHUB = "github"
    DISCORD = "discord"
    HN = "hn"


class ActionKind(str, Enum):
    POST = "post"
    REPLY = "reply"
    COMMENT = "comment"
    DM = "dm"
    SUBMIT = "submit"
    ISSUE = "issue"
    DISCUSSION = "discussion"


class ReasonCode(str, Enum):
    """Stable reason tags. Dashboards key off these exact strings."""
    STOP_ALL = "STOP_ALL"
    PUBLISH_DISABLED = "PUBLISH_DISABLED"
    SECRET_LEAKED = "SECRET_LEAKED"
    HATE_HARASSMENT = "HATE_HARASSMENT"
    SEXUAL_CONTENT = "SEXUAL_CONTENT"
    DOXXING = "DOXXING"
    ILLEGAL_INSTRUCTIONS = "ILLEGAL_INSTRUCTIONS"
    POLITICAL_TARGETING = "POLITICAL_TARGETING"
    BRAND_MISSING = "BRAND_MISSING"
    NO_EVIDENCE_FOR_CLAIM = "NO_EVIDENCE_FOR_CLAIM"
    QUIET_HOURS = "QUIET_HOURS"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    DUPLICATE_CONTENT = "DUPLICATE_CONTENT"
    RISK_TOO_HIGH = "RISK_TOO_HIGH"
    ALLOWED = "ALLOWED"


# Characters of (redacted) text kept in logs and audit rows
TEXT_PREVIEW_CHARS = 200


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_naive_utc(moment: datetime) -> datetime:
    """Aware datetime to naive UTC, the form the SQL tables store."""
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class Evidence:
    """A record backing a quantitative claim (metric, log, screenshot, link)."""
    kind: str
    source: str
    value: str
    timestamp: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "kind": self.kind,
            "source": self.source,
            "value": self.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class CandidateAction:
    """
    A piece of content an agent wants to publish.

    platform and action_kind accept either the enum or its string value.
    A naive `time` is read as UTC.
    """
    platform: Platform
    action_kind: ActionKind
    text: str
    links: Tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    time: datetime = field(default_factory=utcnow)
    evidence: Tuple[Evidence, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "platform", Platform(self.platform))
        object.__setattr__(self, "action_kind", ActionKind(self.action_kind))
        object.__setattr__(self, "links", tuple(self.links or ()))
        object.__setattr__(self, "evidence", tuple(self.evidence or ()))
        if self.time.tzinfo is None:
            object.__setattr__(self, "time", self.time.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class EnforcedLimits:
    max_per_day: int
    max_per_hour: int
    cooldown_seconds: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "max_per_day": self.max_per_day,
            "max_per_hour": self.max_per_hour,
            "cooldown_seconds": self.cooldown_seconds,
        }


@dataclass(frozen=True)
class Decision:
    """Outcome of one evaluation. reason_codes is [ALLOWED] exactly when allow is True."""
    allow: bool
    reason_codes: Tuple[ReasonCode, ...]
    risk_score: int
    enforced_limits: EnforcedLimits
    redacted_text: str
    fingerprint: str
    next_allowed_at: Optional[datetime] = None
    required_backoff_seconds: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allow": self.allow,
            "reason_codes": [code.value for code in self.reason_codes],
            "risk_score": self.risk_score,
            "enforced_limits": self.enforced_limits.to_dict(),
            "redacted_text": self.redacted_text,
            "fingerprint": self.fingerprint,
            "next_allowed_at": self.next_allowed_at.isoformat() if self.next_allowed_at else None,
            "required_backoff_seconds": self.required_backoff_seconds,
        }
