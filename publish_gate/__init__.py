"""
Publish Gate: the policy check every automated post goes through.

evaluate() turns a candidate action into an allow/deny Decision. It enforces:
1. Kill switches (stop file, publish flag)
2. Secret leaks (redaction runs on every action)
3. Hard safety rules (hate, sexual content, doxxing, illegal instructions)
4. Brand mention on broadcast posts
5. Evidence for numeric claims
6. Quiet hours
7. Daily rate limits (with a store)
8. Duplicate content (with a store)
9. Risk score threshold

Denials are normal results carried as reason codes, not exceptions.
"""

from publish_gate.config import PolicyConfig, QuietHours, RateLimitConfig, load_config
from publish_gate.errors import ConfigError, PublishGateError
from publish_gate.policy import create_evaluator, evaluate
from publish_gate.schemas import (
    ActionKind,
    CandidateAction,
    Decision,
    EnforcedLimits,
    Evidence,
    Platform,
    ReasonCode,
)

__version__ = "1.0.0"

__all__ = [
    "ActionKind",
    "CandidateAction",
    "ConfigError",
    "Decision",
    "EnforcedLimits",
    "Evidence",
    "Platform",
    "PolicyConfig",
    "PublishGateError",
    "QuietHours",
    "RateLimitConfig",
    "ReasonCode",
    "create_evaluator",
    "evaluate",
    "load_config",
]
