"""
Audit sinks.

The evaluator calls sink.record(action, decision) after every decision.
LedgerAudit writes one JSON file per event under events/YYYY-MM-DD/ and a
row in the daily markdown table daily/YYYY-MM-DD.md. MemoryAudit keeps the
events in a list for tests and dry runs.

Only redacted text ever reaches the ledger.
"""
import json
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from publish_gate.config import get_data_dir
from publish_gate.schemas import TEXT_PREVIEW_CHARS, CandidateAction, Decision, utcnow

_DAILY_HEADER = (
    "# Publish Gate Daily Log: {date}\n\n"
    "| Time | Platform | Action | Decision | Risk | Reason |\n"
    "|------|----------|--------|----------|------|--------|\n"
)


class AuditSink(Protocol):
    def record(self, action: CandidateAction, decision: Decision) -> Any: ...


@dataclass
class AuditEvent:
    timestamp: str
    fingerprint: str
    platform: str
    action_kind: str
    decision: str  # "allow" | "deny"
    risk_score: int
    reason_codes: List[str]
    text_preview: str
    links: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    evidence_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def create_audit_event(
    action: CandidateAction,
    decision: Decision,
    now: Optional[datetime] = None,
) -> AuditEvent:
    """Flatten an action and its decision into a JSON-safe event."""
    now = now or utcnow()
    return AuditEvent(
        timestamp=now.isoformat(),
        fingerprint=decision.fingerprint,
        platform=action.platform.value,
        action_kind=action.action_kind.value,
        decision="allow" if decision.allow else "deny",
        risk_score=decision.risk_score,
        reason_codes=[code.value for code in decision.reason_codes],
        text_preview=decision.redacted_text[:TEXT_PREVIEW_CHARS],
        links=list(action.links),
        metadata=dict(action.metadata),
        evidence_count=len(action.evidence),
    )


def _write_json_atomic(path: Path, data: Dict[str, Any]) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2, default=str) + "\n", encoding="utf-8")
    os.replace(tmp, path)


class LedgerAudit:
    """
    File ledger.

    Layout under root (default <data dir>/ledger, or PUBLISH_GATE_LEDGER_DIR):
        events/YYYY-MM-DD/<fingerprint[:16]>_<epoch_ms>.json
        daily/YYYY-MM-DD.md

    Write failures propagate; whether they should stop publishing is the
    caller's decision.
    """

    def __init__(self, root: Union[str, Path, None] = None, clock: Optional[Callable[[], datetime]] = None):
        if root is None:
            root = os.environ.get("PUBLISH_GATE_LEDGER_DIR") or get_data_dir() / "ledger"
        self.root = Path(root)
        self._clock = clock or utcnow

    def write_event(self, event: AuditEvent, now: datetime) -> Path:
        day = now.date().isoformat()
        epoch_ms = int(now.timestamp() * 1000)
        path = self.root / "events" / day / f"{event.fingerprint[:16]}_{epoch_ms}.json"
        _write_json_atomic(path, event.to_dict())
        return path

    def append_daily_summary(self, event: AuditEvent, now: datetime) -> Path:
        day = now.date().isoformat()
        path = self.root / "daily" / f"{day}.md"
        path.parent.mkdir(parents=True, exist_ok=True)

        if not path.exists():
            path.write_text(_DAILY_HEADER.format(date=day), encoding="utf-8")

        mark = "✅" if event.decision == "allow" else "❌"
        reasons = ", ".join(event.reason_codes) or "-"
        line = (
            f"| {now.strftime('%H:%M:%S')} | {event.platform} | {event.action_kind} "
            f"| {mark} {event.decision} | {event.risk_score} | {reasons} |\n"
        )
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
        return path

    def record(self, action: CandidateAction, decision: Decision) -> AuditEvent:
        now = self._clock().astimezone(timezone.utc)
        event = create_audit_event(action, decision, now=now)
        self.write_event(event, now)
        self.append_daily_summary(event, now)
        return event


class MemoryAudit:
    """Collects audit events in memory."""

    def __init__(self):
        self.events: List[AuditEvent] = []

    def record(self, action: CandidateAction, decision: Decision) -> AuditEvent:
        event = create_audit_event(action, decision)
        self.events.append(event)
        return event
