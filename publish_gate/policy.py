"""
Policy evaluation: the single gate every candidate action passes through.

Stages run in priority order and each only fires while the action is still
allowed, so the first reason code is the true first cause:

1. Kill switches        STOP_ALL / PUBLISH_DISABLED
2. Secret leak          SECRET_LEAKED
3. Hard safety rules    HATE_HARASSMENT, SEXUAL_CONTENT, DOXXING, ...
4. Brand compliance     BRAND_MISSING
5. Evidence             NO_EVIDENCE_FOR_CLAIM
6. Quiet hours          QUIET_HOURS
7. Rate limit           RATE_LIMIT_EXCEEDED   (store only)
8. Duplicate            DUPLICATE_CONTENT     (store only)
9. Risk threshold       RISK_TOO_HIGH

Redaction, fingerprint, enforced limits and risk score are computed for
every decision regardless of outcome.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from publish_gate.audit import AuditSink
from publish_gate.config import PolicyConfig
from publish_gate.fingerprint import generate_fingerprint
from publish_gate.killswitch import check_kill_switches
from publish_gate.redact import redact
from publish_gate.risk import calculate_risk_score, is_risk_too_high
from publish_gate.rules import (
    allowed_during_quiet_hours,
    check_brand_compliance,
    check_evidence_requirement,
    run_safety_checks,
)
from publish_gate.schemas import (
    ActionKind,
    CandidateAction,
    Decision,
    EnforcedLimits,
    Platform,
    ReasonCode,
    TEXT_PREVIEW_CHARS,
)
from publish_gate.store import PolicyStore

logger = logging.getLogger(__name__)

ACTIVE_HOURS_PER_DAY = 8
SECONDS_PER_DAY = 86400


def get_rate_limit(platform: Platform, action_kind: ActionKind, config: PolicyConfig) -> int:
    return config.limits_for(platform).cap_for(action_kind)


def get_enforced_limits(platform: Platform, action_kind: ActionKind, config: PolicyConfig) -> EnforcedLimits:
    """Daily cap plus the hourly spread and cooldown it implies over an 8-hour active day."""
    max_per_day = get_rate_limit(platform, action_kind, config)
    return EnforcedLimits(
        max_per_day=max_per_day,
        max_per_hour=max(1, math.ceil(max_per_day / ACTIVE_HOURS_PER_DAY)),
        cooldown_seconds=SECONDS_PER_DAY // max_per_day,
    )


def is_quiet_hours(time: datetime, config: PolicyConfig) -> bool:
    """True if `time` falls inside the quiet window, judged by the hour in the configured zone."""
    local = time.astimezone(config.quiet_hours.zone)
    return config.quiet_hours.contains(local.hour)


def next_quiet_hours_end(time: datetime, config: PolicyConfig) -> datetime:
    """Next occurrence of the window's end hour strictly after `time`, in the configured zone."""
    local = time.astimezone(config.quiet_hours.zone)
    candidate = local.replace(hour=config.quiet_hours.end_hour, minute=0, second=0, microsecond=0)
    if candidate <= local:
        candidate += timedelta(days=1)
    return candidate


def next_utc_midnight(time: datetime) -> datetime:
    """Start of the UTC calendar day after `time` (rate counters roll over here)."""
    utc = time.astimezone(timezone.utc)
    return datetime(utc.year, utc.month, utc.day, tzinfo=timezone.utc) + timedelta(days=1)


def evaluate(
    action: CandidateAction,
    config: PolicyConfig,
    store: Optional[PolicyStore] = None,
    audit: Optional[AuditSink] = None,
) -> Decision:
    """
    Decide whether an action may be published.

    Without a store the rate-limit and duplicate stages are skipped; every
    other stage still applies. Exceptions from the store or audit sink are
    not caught.

    Args:
        action: The candidate action
        config: Policy configuration (validated here, ConfigError if invalid)
        store: Counters, dedupe index and decision log
        audit: Sink called with (action, decision) after every decision

    Returns:
        The Decision. After it is built: store.log_action always,
        increment_counter/add_fingerprint on allow, audit.record always.
    """
    config.validate()

    reason_codes: List[ReasonCode] = []
    allow = True
    next_allowed_at = None
    required_backoff = None

    redaction = redact(action.text)
    fingerprint = generate_fingerprint(
        action.platform, action.action_kind, redaction.redacted_text, action.links
    )
    enforced_limits = get_enforced_limits(action.platform, action.action_kind, config)

    # 1. Kill switches
    kill_switch = check_kill_switches(config)
    if kill_switch:
        logger.warning("Publishing halted by kill switch: %s", kill_switch.value)
        reason_codes.append(kill_switch)
        allow = False

    # 2. Secret leak
    if allow and redaction.has_secrets:
        reason_codes.append(ReasonCode.SECRET_LEAKED)
        allow = False

    # 3. Hard safety rules
    if allow:
        violations = run_safety_checks(action.text, enforce_political=config.enforce_political_targeting)
        if violations:
            reason_codes.extend(violations)
            allow = False

    # 4. Brand compliance
    if allow:
        brand_issue = check_brand_compliance(action, config.brand_keywords)
        if brand_issue:
            reason_codes.append(brand_issue)
            allow = False

    # 5. Evidence for numeric claims
    if allow:
        evidence_issue = check_evidence_requirement(action)
        if evidence_issue:
            reason_codes.append(evidence_issue)
            allow = False

    # 6. Quiet hours
    if allow and is_quiet_hours(action.time, config) and not allowed_during_quiet_hours(action.action_kind):
        reason_codes.append(ReasonCode.QUIET_HOURS)
        allow = False
        next_allowed_at = next_quiet_hours_end(action.time, config)

    # 7. Rate limit
    if allow and store is not None:
        current = store.get_today_count(action.platform, action.action_kind)
        if current >= enforced_limits.max_per_day:
            reason_codes.append(ReasonCode.RATE_LIMIT_EXCEEDED)
            allow = False
            next_allowed_at = next_utc_midnight(action.time)
            required_backoff = int((next_allowed_at - action.time).total_seconds())

    # 8. Duplicate
    if allow and store is not None:
        if store.is_duplicate(fingerprint, config.dedupe_window_days):
            reason_codes.append(ReasonCode.DUPLICATE_CONTENT)
            allow = False

    # 9. Risk threshold
    risk = calculate_risk_score(action, config.safe_domains)
    if allow and is_risk_too_high(risk.total, config.risk_threshold):
        reason_codes.append(ReasonCode.RISK_TOO_HIGH)
        allow = False

    if allow:
        reason_codes.append(ReasonCode.ALLOWED)

    decision = Decision(
        allow=allow,
        reason_codes=tuple(reason_codes),
        risk_score=risk.total,
        enforced_limits=enforced_limits,
        redacted_text=redaction.redacted_text,
        fingerprint=fingerprint,
        next_allowed_at=next_allowed_at,
        required_backoff_seconds=required_backoff,
    )

    logger.debug(
        "Decision %s/%s fp=%s allow=%s codes=%s risk=%d",
        action.platform.value, action.action_kind.value, fingerprint[:12],
        allow, ",".join(c.value for c in reason_codes), risk.total,
    )

    if store is not None:
        store.log_action(
            action.platform,
            action.action_kind,
            fingerprint,
            decision,
            redaction.redacted_text[:TEXT_PREVIEW_CHARS],
        )
        if allow:
            store.increment_counter(action.platform, action.action_kind)
            store.add_fingerprint(fingerprint, action.platform)

    if audit is not None:
        audit.record(action, decision)

    return decision


def create_evaluator(
    config: PolicyConfig,
    store: Optional[PolicyStore] = None,
    audit: Optional[AuditSink] = None,
) -> Callable[[CandidateAction], Decision]:
    """
    Bind config and collaborators once; returns action -> Decision.

    Raises ConfigError immediately if the config is invalid.
    """
    config.validate()

    def _evaluate(action: CandidateAction) -> Decision:
        return evaluate(action, config, store, audit)

    return _evaluate
