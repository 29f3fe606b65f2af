"""
Content safety and compliance rules.

Hard blocks are plain pattern tables: each SafetyRule pairs a reason code
with the patterns that trigger it, and run_safety_checks() walks the table.
Brand compliance, evidence for numeric claims and quiet-hours eligibility
are separate single checks because the evaluator runs them as their own
stages.
"""
import logging
import re
from typing import Iterable, List, NamedTuple, Optional, Sequence

from publish_gate.schemas import ActionKind, CandidateAction, ReasonCode

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

HATE_PATTERNS = [
    re.compile(
        r"\b(kill|murder|exterminate)\s+(all\s+)?"
        r"(jews|muslims|christians|blacks|whites|asians|gays|trans)\b", _I
    ),
    re.compile(r"\b(n[i1]gg[e3]rs?|f[a4]gg[o0]ts?|k[i1]k[e3]s?|sp[i1]cs?|ch[i1]nks?|tr[a4]nn(y|ies))\b", _I),
    re.compile(r"\bdeath\s+to\s+(all\s+)?(jews|muslims|christians|gays|trans|blacks|whites)\b", _I),
    re.compile(r"\b(gas|lynch|hang)\s+the\s+(jews|muslims|blacks|gays)\b", _I),
]

SEXUAL_PATTERNS = [
    re.compile(r"\b(porn|xxx|nsfw|nude|naked|sex\s*tape)\b", _I),
    re.compile(r"\b(onlyfans|fansly)\s*(link|content)\b", _I),
    re.compile(r"\bexplicit\s+(sexual|content)\b", _I),
]

DOXXING_PATTERNS = [
    re.compile(r"\bhome\s+address[:\s]+\d+", _I),
    re.compile(r"\bphone[:\s]+[\d\-\(\)\s]{10,}", _I),
    re.compile(r"\bssn[:\s]+\d{3}[\-\s]?\d{2}[\-\s]?\d{4}", _I),
    re.compile(r"\bsocial\s+security[:\s]+\d", _I),
    re.compile(r"\bpersonal\s+(info|information|details)\s+of\s+@?\w+", _I),
]

ILLEGAL_PATTERNS = [
    re.compile(r"\bhow\s+to\s+(make|build)\s+(a\s+)?(bomb|explosive|weapon)", _I),
    re.compile(r"\b(synthesize|cook|make)\s+(meth|cocaine|heroin|fentanyl)", _I),
    re.compile(r"\bhack\s+(into|someone'?s?)\s+(bank|account)", _I),
    re.compile(r"\bbuy\s+(drugs|weapons|guns)\s+(online|darknet)", _I),
    re.compile(r"\bsteal\s+(from|identity)", _I),
]

POLITICAL_TARGETING_PATTERNS = [
    re.compile(r"\bvote\s+(for|against)\s+[A-Z][a-z]+\s+[A-Z]", _I),
    re.compile(r"\b(democrats?|republicans?|liberals?|conservatives?)\s+(are|is)\s+(evil|stupid|destroying)", _I),
    re.compile(r"\b(trump|biden|maga|antifa)\s+(supporters?|voters?)\s+(should|must|need\s+to)", _I),
    re.compile(r"\bpolitical\s+campaign\s+(message|ad|content)", _I),
]

NUMERIC_CLAIM_PATTERNS = [
    re.compile(r"\d[\d,]*\s*(req|requests?)/s", _I),                 # 10,000 req/s
    re.compile(r"p\d{2,3}\s*(latency\s*of|of|:)?\s*\d+\s*m?s", _I),   # p95 latency of 5ms
    re.compile(r"\d+(\.\d+)?%\s*(coverage|uptime|availability|accuracy)", _I),
    re.compile(r"(coverage|uptime|availability|accuracy)[:\s]+\d+(\.\d+)?%", _I),
    re.compile(r"\d+x\s*(faster|better|improvement)", _I),
    re.compile(r"(achieved|reached|hit)\s+\d", _I),
]

BROADCAST_KINDS = frozenset(
    {ActionKind.POST, ActionKind.SUBMIT, ActionKind.DISCUSSION, ActionKind.ISSUE}
)
QUIET_HOURS_EXEMPT_KINDS = frozenset({ActionKind.REPLY, ActionKind.COMMENT})


class SafetyRule(NamedTuple):
    code: ReasonCode
    patterns: Sequence["re.Pattern[str]"]

    def matches(self, text: str) -> bool:
        return _matches_any(self.patterns, text)


SAFETY_RULES = (
    SafetyRule(ReasonCode.HATE_HARASSMENT, HATE_PATTERNS),
    SafetyRule(ReasonCode.SEXUAL_CONTENT, SEXUAL_PATTERNS),
    SafetyRule(ReasonCode.DOXXING, DOXXING_PATTERNS),
    SafetyRule(ReasonCode.ILLEGAL_INSTRUCTIONS, ILLEGAL_PATTERNS),
    SafetyRule(ReasonCode.POLITICAL_TARGETING, POLITICAL_TARGETING_PATTERNS),
)


def _matches_any(patterns: Iterable["re.Pattern[str]"], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def check_hate_harassment(text: str) -> bool:
    return _matches_any(HATE_PATTERNS, text)


def check_sexual_content(text: str) -> bool:
    return _matches_any(SEXUAL_PATTERNS, text)


def check_doxxing(text: str) -> bool:
    return _matches_any(DOXXING_PATTERNS, text)


def check_illegal_instructions(text: str) -> bool:
    return _matches_any(ILLEGAL_PATTERNS, text)


def check_political_targeting(text: str) -> bool:
    return _matches_any(POLITICAL_TARGETING_PATTERNS, text)


def has_brand_mention(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match against any brand keyword."""
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def has_numeric_claims(text: str) -> bool:
    return _matches_any(NUMERIC_CLAIM_PATTERNS, text)


def requires_brand_mention(action_kind: ActionKind) -> bool:
    return ActionKind(action_kind) in BROADCAST_KINDS


def allowed_during_quiet_hours(action_kind: ActionKind) -> bool:
    return ActionKind(action_kind) in QUIET_HOURS_EXEMPT_KINDS


def run_safety_checks(text: str, enforce_political: bool = False) -> List[ReasonCode]:
    """
    Run every hard-block rule against text.

    All five rules always run. POLITICAL_TARGETING is only reported when
    enforce_political is set; otherwise a match is logged and dropped.

    Args:
        text: Raw candidate text
        enforce_political: Include POLITICAL_TARGETING in the result

    Returns:
        Violated reason codes in rule-table order (empty list means pass).
    """
    violations = [rule.code for rule in SAFETY_RULES if rule.matches(text)]

    if ReasonCode.POLITICAL_TARGETING in violations and not enforce_political:
        logger.info("Political targeting pattern matched but enforcement is off")
        violations.remove(ReasonCode.POLITICAL_TARGETING)

    return violations


def check_brand_compliance(action: CandidateAction, keywords: Iterable[str]) -> Optional[ReasonCode]:
    """BRAND_MISSING for broadcast kinds without a brand keyword; replies/comments/dms are exempt."""
    if requires_brand_mention(action.action_kind) and not has_brand_mention(action.text, keywords):
        return ReasonCode.BRAND_MISSING
    return None


def check_evidence_requirement(action: CandidateAction) -> Optional[ReasonCode]:
    """NO_EVIDENCE_FOR_CLAIM when the text makes a numeric claim and no evidence is attached."""
    if has_numeric_claims(action.text) and not action.evidence:
        return ReasonCode.NO_EVIDENCE_FOR_CLAIM
    return None
