"""
Risk scoring.

Soft signals that survive the hard blocks. Scoring:
- base: 10, +15 if any risky keyword matches (added to base)
- secrets_detected: +40
- external_links: +20 when more than 3 links leave the safe domains
- low_quality: +20 for post/submit/discussion shorter than 50 chars
The total is clamped to 0-100.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence
from urllib.parse import urlparse

from publish_gate.config import DEFAULT_SAFE_DOMAINS
from publish_gate.redact import contains_secrets
from publish_gate.schemas import ActionKind, CandidateAction

BASE_SCORE = 10
RISKY_KEYWORD_PENALTY = 15
SECRETS_PENALTY = 40
EXTERNAL_LINKS_PENALTY = 20
LOW_QUALITY_PENALTY = 20
MAX_EXTERNAL_LINKS = 3
MIN_CONTENT_LENGTH = 50
DEFAULT_RISK_THRESHOLD = 70

CONTENT_KINDS = frozenset({ActionKind.POST, ActionKind.SUBMIT, ActionKind.DISCUSSION})

_I = re.IGNORECASE

RISKY_KEYWORDS = [
    # financial promises
    re.compile(r"\b(guaranteed|100%|risk.?free|get\s+rich)\b", _I),
    re.compile(r"\b(invest|trading|crypto)\s+(now|today|opportunity)", _I),
    # spam
    re.compile(r"\b(click\s+here|act\s+now|limited\s+time|don'?t\s+miss)\b", _I),
    re.compile(r"\b(free\s+money|earn\s+\$\d+|make\s+money\s+fast)\b", _I),
    # aggressive marketing
    re.compile(r"\b(best|#1|number\s+one)\s+(in\s+the\s+world|ever)\b", _I),
    re.compile(r"\b(revolutionary|game.?changing|disruptive)\b", _I),
    # urgency
    re.compile(r"\b(hurry|urgent|last\s+chance|expires?\s+(soon|today))\b", _I),
]


@dataclass(frozen=True)
class RiskBreakdown:
    base: int
    secrets_detected: int
    external_links: int
    low_quality: int
    total: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "base": self.base,
            "secrets_detected": self.secrets_detected,
            "external_links": self.external_links,
            "low_quality": self.low_quality,
            "total": self.total,
        }


def _is_safe_host(hostname: str, safe_domains: Iterable[str]) -> bool:
    hostname = hostname.lower().rstrip(".")
    return any(hostname == d or hostname.endswith("." + d) for d in safe_domains)


def count_external_links(links: Sequence[str], safe_domains: Iterable[str] = DEFAULT_SAFE_DOMAINS) -> int:
    """Links whose host is not a safe domain (or a subdomain of one). Unparseable links count."""
    safe_domains = tuple(safe_domains)
    count = 0
    for link in links:
        try:
            hostname = urlparse(link).hostname
        except ValueError:
            hostname = None
        if not hostname or not _is_safe_host(hostname, safe_domains):
            count += 1
    return count


def is_low_quality(action: CandidateAction) -> bool:
    return action.action_kind in CONTENT_KINDS and len(action.text) < MIN_CONTENT_LENGTH


def has_risky_keywords(text: str) -> bool:
    return any(p.search(text) for p in RISKY_KEYWORDS)


def calculate_risk_score(
    action: CandidateAction,
    safe_domains: Iterable[str] = DEFAULT_SAFE_DOMAINS,
) -> RiskBreakdown:
    """
    Score an action. Runs on the original text, never the redacted copy.

    Args:
        action: Candidate action
        safe_domains: Hosts that do not count as external links

    Returns:
        RiskBreakdown with each bucket and the clamped total.
    """
    base = BASE_SCORE
    if has_risky_keywords(action.text):
        base += RISKY_KEYWORD_PENALTY

    secrets_detected = SECRETS_PENALTY if contains_secrets(action.text) else 0
    external_links = (
        EXTERNAL_LINKS_PENALTY
        if count_external_links(action.links, safe_domains) > MAX_EXTERNAL_LINKS
        else 0
    )
    low_quality = LOW_QUALITY_PENALTY if is_low_quality(action) else 0

    total = base + secrets_detected + external_links + low_quality
    return RiskBreakdown(
        base=base,
        secrets_detected=secrets_detected,
        external_links=external_links,
        low_quality=low_quality,
        total=max(0, min(total, 100)),
    )


def is_risk_too_high(score: int, threshold: int = DEFAULT_RISK_THRESHOLD) -> bool:
    return score >= threshold
