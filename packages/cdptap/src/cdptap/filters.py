"""Per-session capture filters.

Filters run before an event is admitted to its ring buffer. Two gates, both
must pass: the kind gate (category allow-list) and the URL gate
(deny-list first, then allow-list).

PUBLIC API:
  - FilterConfig: Named filter settings, replaced as a whole
  - FilterPipeline: Evaluates a FilterConfig against envelopes
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from cdptap.cdp.models import CATEGORIES, EventEnvelope
from cdptap.errors import InvalidInput

logger = logging.getLogger(__name__)

__all__ = ["FilterConfig", "FilterPipeline"]


def _str_list(name: str, value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise InvalidInput(f"{name} must be a list of strings")
    return [str(v) for v in value]


@dataclass
class FilterConfig:
    """Capture filter settings for one session.

    Attributes:
        kinds: Allowed categories ("console", "log", "network"). Empty allows all.
        url_allowlist: Substrings a URL must contain one of. Empty allows all.
        url_blocklist: Substrings that reject a URL. Checked before the allow-list.
        max_body_bytes: Byte budget for text and bodies. None uses the config default.
    """

    kinds: list[str] = field(default_factory=list)
    url_allowlist: list[str] = field(default_factory=list)
    url_blocklist: list[str] = field(default_factory=list)
    max_body_bytes: int | None = None

    def __post_init__(self):
        unknown = [k for k in self.kinds if k not in CATEGORIES]
        if unknown:
            raise InvalidInput(f"Unknown filter kinds: {', '.join(unknown)} (expected {', '.join(CATEGORIES)})")
        if self.max_body_bytes is not None and self.max_body_bytes < 1:
            raise InvalidInput("max_body_bytes must be positive")

    @classmethod
    def from_dict(cls, data: dict | None) -> "FilterConfig":
        """Build from the camelCase JSON shape used on the command surface."""
        data = data or {}
        max_body = data.get("maxBodyBytes")
        return cls(
            kinds=_str_list("kinds", data.get("kinds")),
            url_allowlist=_str_list("urlAllowlist", data.get("urlAllowlist")),
            url_blocklist=_str_list("urlBlocklist", data.get("urlBlocklist")),
            max_body_bytes=int(max_body) if max_body is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "kinds": list(self.kinds),
            "urlAllowlist": list(self.url_allowlist),
            "urlBlocklist": list(self.url_blocklist),
            "maxBodyBytes": self.max_body_bytes,
        }


class FilterPipeline:
    """Evaluates one FilterConfig. set() swaps the whole configuration."""

    def __init__(self, config: FilterConfig | None = None):
        self.config = config or FilterConfig()

    def set(self, config: FilterConfig) -> None:
        """Replace the configuration. No partial patching."""
        self.config = config
        logger.debug(f"Filters replaced: {config.to_dict()}")

    def admits_category(self, category: str) -> bool:
        """Kind gate. Cheap enough to run before normalization."""
        kinds = self.config.kinds
        return not kinds or category in kinds

    def admits_url(self, url: str | None) -> bool:
        """URL gate. Events without a URL always pass.

        The deny-list is authoritative: an explicit block cannot be
        overridden by an allow entry.
        """
        if not url:
            return True

        for blocked in self.config.url_blocklist:
            if blocked in url:
                return False

        allow = self.config.url_allowlist
        if allow:
            return any(allowed in url for allowed in allow)

        return True

    def admits(self, event: EventEnvelope) -> bool:
        """Both gates must pass."""
        return self.admits_category(event.category) and self.admits_url(getattr(event, "url", None))

    def max_body_bytes(self, default: int) -> int:
        return self.config.max_body_bytes or default
