"""
Secret redaction.

Detects credential-like or internal-only substrings and masks them before
text is published, fingerprinted, or written anywhere. Each pattern is a
named table entry; detection runs every entry against the original text,
then all replacements are applied in table order to build the redacted copy.

Over-triggering is accepted: a long hex private key can be tagged both as
its own kind and as hex_secret. Extra redaction is safe, a miss is not.
"""
import re
from dataclasses import dataclass
from typing import FrozenSet, List, NamedTuple


class SecretPattern(NamedTuple):
    name: str
    pattern: "re.Pattern[str]"
    replacement: str


# Specific formats first so the generic catch-alls at the end never eat
# part of a PEM block, JWT, SSH key or provider token before it is replaced whole.
SECRET_PATTERNS: List[SecretPattern] = [
    # Provider tokens
    SecretPattern(
        "github_token",
        re.compile(r"\b(ghp_[a-zA-Z0-9]{20,}|github_pat_[a-zA-Z0-9]{22}_[a-zA-Z0-9]{59})\b"),
        "[GITHUB_TOKEN]",
    ),
    SecretPattern("openai_key", re.compile(r"\b(sk-[a-zA-Z0-9]{48})\b"), "[OPENAI_KEY]"),
    SecretPattern("anthropic_key", re.compile(r"\b(sk-ant-[a-zA-Z0-9-]{95})\b"), "[ANTHROPIC_KEY]"),
    SecretPattern("aws_key", re.compile(r"\b(AKIA[0-9A-Z]{16})\b"), "[AWS_KEY]"),
    SecretPattern(
        "telegram_token", re.compile(r"\b(\d{8,10}:[a-zA-Z0-9_-]{35})\b"), "[TELEGRAM_TOKEN]"
    ),
    SecretPattern(
        "discord_token",
        re.compile(r"\b([MN][A-Za-z\d]{23,}\.[\w-]{6}\.[\w-]{27})\b"),
        "[DISCORD_TOKEN]",
    ),
    SecretPattern(
        "slack_token",
        re.compile(r"\b(xox[baprs]-[0-9]{10,13}-[0-9]{10,13}[a-zA-Z0-9-]*)\b"),
        "[SLACK_TOKEN]",
    ),
    # Key material
    SecretPattern(
        "private_key",
        re.compile(
            r"-----BEGIN (RSA |EC |OPENSSH |DSA )?PRIVATE KEY-----[\s\S]*?"
            r"-----END (RSA |EC |OPENSSH |DSA )?PRIVATE KEY-----"
        ),
        "[PRIVATE_KEY]",
    ),
    SecretPattern(
        "ssh_key",
        re.compile(r"\b(ssh-(rsa|ed25519|ecdsa) AAAA[0-9A-Za-z+/]+[=]{0,3})\b"),
        "[SSH_KEY]",
    ),
    # key=value style fields; keeps the field name
    SecretPattern(
        "password_field",
        re.compile(
            r"(password|passwd|pwd|secret|token|api_key|apikey|auth)[\s]*[:=][\s]*[\"']?([^\s\"'\n]{8,})[\"']?",
            re.IGNORECASE,
        ),
        r"\1=[REDACTED]",
    ),
    SecretPattern(
        "bearer_token", re.compile(r"Bearer\s+[a-zA-Z0-9._-]{20,}", re.IGNORECASE), "Bearer [REDACTED]"
    ),
    SecretPattern(
        "connection_string",
        re.compile(r"(mongodb|postgres|mysql|redis|amqp)://[^\s]+", re.IGNORECASE),
        "[CONNECTION_STRING]",
    ),
    SecretPattern(
        "internal_ip",
        re.compile(
            r"\b(10\.\d{1,3}\.\d{1,3}\.\d{1,3}"
            r"|172\.(1[6-9]|2\d|3[01])\.\d{1,3}\.\d{1,3}"
            r"|192\.168\.\d{1,3}\.\d{1,3})\b"
        ),
        "[INTERNAL_IP]",
    ),
    SecretPattern(
        "jwt", re.compile(r"\beyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*"), "[JWT_TOKEN]"
    ),
    # Catch-alls, keep last
    SecretPattern("aws_secret", re.compile(r"\b([a-zA-Z0-9+/]{40})\b"), "[AWS_SECRET]"),
    SecretPattern("hex_secret", re.compile(r"\b([a-f0-9]{32,})\b", re.IGNORECASE), "[HEX_SECRET]"),
]


@dataclass(frozen=True)
class RedactionResult:
    redacted_text: str
    has_secrets: bool
    secret_kinds: FrozenSet[str]


def redact(text: str) -> RedactionResult:
    """
    Mask every detected secret in text.

    Args:
        text: Raw candidate text

    Returns:
        RedactionResult with the masked copy and the names of every pattern
        that matched the original text.
    """
    kinds = [p.name for p in SECRET_PATTERNS if p.pattern.search(text)]

    redacted = text
    for entry in SECRET_PATTERNS:
        if entry.name in kinds:
            redacted = entry.pattern.sub(entry.replacement, redacted)

    return RedactionResult(
        redacted_text=redacted,
        has_secrets=bool(kinds),
        secret_kinds=frozenset(kinds),
    )


def contains_secrets(text: str) -> bool:
    """Detection only; same table as redact(), no copy built."""
    return any(p.pattern.search(text) for p in SECRET_PATTERNS)
