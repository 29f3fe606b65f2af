"""
Configuration for the publish gate.

Config file: ~/.publish-gate/config.json
The directory can be moved with PUBLISH_GATE_DATA_DIR.

Every value has a default taken from the production deployment, but a
config that is present and wrong fails loudly (ConfigError) instead of
falling back to something weaker.
"""
import copy
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from publish_gate.errors import ConfigError
from publish_gate.schemas import ActionKind, Platform

DEFAULT_DAILY_CAP = 10
CONFIG_FILE_NAME = "config.json"

DEFAULT_BRAND_KEYWORDS = (
    "agenium",
    "agent://",
    "dns registry",
    "agent registry",
    "marketplace",
    "a2a protocol",
    "agent-to-agent",
)

DEFAULT_SAFE_DOMAINS = ("github.com", "agenium.io", "docs.agenium.io")

# action kind -> RateLimitConfig attribute(s), first non-empty wins
_CAP_FIELDS = {
    ActionKind.POST: ("posts_per_day",),
    ActionKind.REPLY: ("replies_per_day",),
    ActionKind.COMMENT: ("comments_per_day",),
    ActionKind.SUBMIT: ("submissions_per_day", "posts_per_day"),
    ActionKind.DISCUSSION: ("discussions_per_day",),
    ActionKind.ISSUE: ("issues_per_day",),
    ActionKind.DM: ("dms_per_day",),
}

_REQUIRED_KEYS = (
    "rate_limits",
    "quiet_hours",
    "risk_threshold",
    "dedupe_window_days",
    "kill_switch_path",
)


def get_data_dir() -> Path:
    """Get the gate's data directory (config, stop file, database)."""
    return Path(os.environ.get("PUBLISH_GATE_DATA_DIR", Path.home() / ".publish-gate"))


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-platform daily caps. None means "use the default"."""
    posts_per_day: Optional[int] = None
    replies_per_day: Optional[int] = None
    comments_per_day: Optional[int] = None
    submissions_per_day: Optional[int] = None
    discussions_per_day: Optional[int] = None
    issues_per_day: Optional[int] = None
    dms_per_day: Optional[int] = None

    def cap_for(self, action_kind: ActionKind) -> int:
        """Daily cap for an action kind, falling back to DEFAULT_DAILY_CAP."""
        for name in _CAP_FIELDS.get(ActionKind(action_kind), ()):
            value = getattr(self, name)
            if value is not None:
                return value
        return DEFAULT_DAILY_CAP

    def caps(self) -> Dict[str, int]:
        return {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
            if getattr(self, name) is not None
        }


DEFAULT_RATE_LIMITS: Dict[Platform, RateLimitConfig] = {
    Platform.X: RateLimitConfig(posts_per_day=3, replies_per_day=10, comments_per_day=10),
    Platform.REDDIT: RateLimitConfig(posts_per_day=2, replies_per_day=10, comments_per_day=10),
    Platform.HN: RateLimitConfig(
        submissions_per_day=1, posts_per_day=1, comments_per_day=5, replies_per_day=5,
    ),
    Platform.TELEGRAM: RateLimitConfig(posts_per_day=3, replies_per_day=20, comments_per_day=20),
    Platform.GITHUB: RateLimitConfig(
        discussions_per_day=2, issues_per_day=2, posts_per_day=2,
        comments_per_day=5, replies_per_day=5,
    ),
    Platform.DISCORD: RateLimitConfig(
        posts_per_day=20, replies_per_day=20, comments_per_day=20, dms_per_day=20,
    ),
}


@dataclass(frozen=True)
class QuietHours:
    """Nightly window [start_hour, end_hour) in an IANA zone; wraps midnight if start > end."""
    start_hour: int = 1
    end_hour: int = 7
    timezone: str = "Europe/Berlin"

    def contains(self, hour: int) -> bool:
        if self.start_hour == self.end_hour:
            return False
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class PolicyConfig:
    """Everything the evaluator needs besides the action and its collaborators."""
    rate_limits: Mapping[Platform, RateLimitConfig] = field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    risk_threshold: int = 70
    dedupe_window_days: int = 7
    kill_switch_path: str = field(default_factory=lambda: str(get_data_dir() / "STOP_ALL"))
    publish_flag_var: str = "PUBLISH_ENABLED"
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ, repr=False, compare=False)
    brand_keywords: Tuple[str, ...] = DEFAULT_BRAND_KEYWORDS
    safe_domains: Tuple[str, ...] = DEFAULT_SAFE_DOMAINS
    enforce_political_targeting: bool = False

    def limits_for(self, platform: Platform) -> RateLimitConfig:
        return self.rate_limits.get(Platform(platform), RateLimitConfig())

    def validate(self) -> "PolicyConfig":
        """
        Check every field that could weaken the policy if it were wrong.

        Returns self so callers can chain. Raises ConfigError listing all problems.
        """
        problems = []

        if not _is_int(self.risk_threshold) or not 0 <= self.risk_threshold <= 100:
            problems.append(f"risk_threshold must be an integer 0-100, got {self.risk_threshold!r}")
        if not _is_int(self.dedupe_window_days) or self.dedupe_window_days < 0:
            problems.append(
                f"dedupe_window_days must be a non-negative integer, got {self.dedupe_window_days!r}"
            )

        qh = self.quiet_hours
        for name in ("start_hour", "end_hour"):
            hour = getattr(qh, name)
            if not _is_int(hour) or not 0 <= hour <= 23:
                problems.append(f"quiet_hours.{name} must be an integer 0-23, got {hour!r}")
        try:
            qh.zone
        except (ZoneInfoNotFoundError, ValueError, TypeError):
            problems.append(f"quiet_hours.timezone is not a known IANA zone: {qh.timezone!r}")

        if not self.kill_switch_path:
            problems.append("kill_switch_path must not be empty")

        for platform, limits in self.rate_limits.items():
            for name, cap in limits.caps().items():
                if not _is_int(cap) or cap < 1:
                    problems.append(f"rate_limits.{Platform(platform).value}.{name} must be >= 1, got {cap!r}")

        if problems:
            raise ConfigError("Invalid policy config: " + "; ".join(problems))
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> "PolicyConfig":
        """
        Build a config from plain JSON-style data.

        The five core keys are required; the rest fall back to defaults.
        Unknown platforms or cap names raise ConfigError.
        """
        missing = [key for key in _REQUIRED_KEYS if key not in data]
        if missing:
            raise ConfigError(f"Missing required config field(s): {', '.join(missing)}")

        rate_limits = {}
        for platform_name, caps in data["rate_limits"].items():
            try:
                platform = Platform(platform_name)
            except ValueError:
                raise ConfigError(f"Unknown platform in rate_limits: {platform_name!r}") from None
            try:
                rate_limits[platform] = RateLimitConfig(**caps)
            except TypeError as e:
                raise ConfigError(f"Bad rate_limits entry for {platform_name!r}: {e}") from None

        qh = data["quiet_hours"]
        quiet_hours = QuietHours(
            start_hour=qh.get("start_hour", qh.get("start")),
            end_hour=qh.get("end_hour", qh.get("end")),
            timezone=qh.get("timezone"),
        )

        kwargs: Dict[str, Any] = dict(
            rate_limits=rate_limits,
            quiet_hours=quiet_hours,
            risk_threshold=data["risk_threshold"],
            dedupe_window_days=data["dedupe_window_days"],
            kill_switch_path=str(Path(data["kill_switch_path"]).expanduser()),
        )
        for key in ("publish_flag_var", "enforce_political_targeting"):
            if key in data:
                kwargs[key] = data[key]
        for key in ("brand_keywords", "safe_domains"):
            if key in data:
                kwargs[key] = tuple(data[key])
        if environ is not None:
            kwargs["environ"] = environ

        return cls(**kwargs).validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rate_limits": {
                Platform(p).value: limits.caps() for p, limits in self.rate_limits.items()
            },
            "quiet_hours": {
                "start_hour": self.quiet_hours.start_hour,
                "end_hour": self.quiet_hours.end_hour,
                "timezone": self.quiet_hours.timezone,
            },
            "risk_threshold": self.risk_threshold,
            "dedupe_window_days": self.dedupe_window_days,
            "kill_switch_path": self.kill_switch_path,
            "publish_flag_var": self.publish_flag_var,
            "brand_keywords": list(self.brand_keywords),
            "safe_domains": list(self.safe_domains),
            "enforce_political_targeting": self.enforce_political_targeting,
        }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _load_json_file(path: Path) -> dict:
    """Load a JSON file. Missing file -> {}; unreadable or invalid -> ConfigError."""
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must hold a JSON object")
    return data


def load_config(path: Optional[Path] = None) -> PolicyConfig:
    """
    Load the policy config.

    Merges defaults with the config file; nested sections (rate_limits per
    platform, quiet_hours) merge key by key so a file can override a single cap.

    Args:
        path: Config file to read. Defaults to <data dir>/config.json.

    Returns:
        A validated PolicyConfig.
    """
    path = path or get_data_dir() / CONFIG_FILE_NAME
    data = _load_json_file(Path(path))

    merged = copy.deepcopy(PolicyConfig().to_dict())
    for key, value in data.items():
        if key == "rate_limits" and isinstance(value, dict):
            for platform_name, caps in value.items():
                merged["rate_limits"][platform_name] = {
                    **merged["rate_limits"].get(platform_name, {}), **caps
                }
        elif key == "quiet_hours" and isinstance(value, dict):
            merged["quiet_hours"].update(value)
        else:
            merged[key] = value

    return PolicyConfig.from_dict(merged)
