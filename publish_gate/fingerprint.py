"""
Content fingerprints for dedupe and audit correlation.

SHA-256 over "platform:action_kind:normalized_text:sorted_links". Stored
fingerprints from earlier deployments depend on this exact byte layout, so
the normalization order below must not change.

"Whitespace" here is the ECMAScript set, not Python's str.isspace(): U+FEFF
counts, the U+001C-U+001F separators do not.
"""
import hashlib
import re
from typing import Iterable

# ECMAScript WhiteSpace + LineTerminator, as used inside a regex character class
WHITESPACE_CHARS = (
    "\t\n\v\f\r\u0020\u00a0\u1680\u2000-\u200a"
    "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_WHITESPACE_RE = re.compile(f"[{WHITESPACE_CHARS}]+")
# ASCII word characters only; anything else that is not whitespace is dropped
_NON_WORD_RE = re.compile(f"[^A-Za-z0-9_{WHITESPACE_CHARS}]")


def normalize_text(text: str) -> str:
    """Lowercase, collapse whitespace runs, drop punctuation, trim (in that order)."""
    text = text.lower()
    text = _WHITESPACE_RE.sub(" ", text)
    text = _NON_WORD_RE.sub("", text)
    return text.strip(" ")


def generate_fingerprint(platform: str, action_kind: str, redacted_text: str, links: Iterable[str]) -> str:
    """
    Fingerprint a piece of content for a platform and action kind.

    Args:
        platform: Platform value, e.g. "x"
        action_kind: Action kind value, e.g. "post"
        redacted_text: Text after secret redaction
        links: Links in any order

    Returns:
        64-char lowercase hex digest
    """
    platform = getattr(platform, "value", platform)
    action_kind = getattr(action_kind, "value", action_kind)
    joined_links = "|".join(sorted(links))
    payload = f"{platform}:{action_kind}:{normalize_text(redacted_text)}:{joined_links}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
