"""Policy resolver — typed access to the deployment parameters.

Parameters live in ``config/gallery_params.json``. They seed a fresh
deployment only: once state has been persisted, the authority changes
configuration through the service and the store wins on restart.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from gallery.badges.registry import BadgeConfig
from gallery.host import DEFAULT_STORAGE_BYTE_PRICE

PARAMS_FILE = "gallery_params.json"


class PolicyResolver:
    """Resolves deployment parameters.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        resolver.badge_config()
    """

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        self._validate()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        path = config_dir / PARAMS_FILE
        with path.open("r", encoding="utf-8") as f:
            return cls(json.load(f))

    def _validate(self) -> None:
        tags = self._params.get("sponsorship", {}).get("tags", [])
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValueError("sponsorship.tags must be a list of strings")
        duration = self.proposal_duration()
        if duration is not None and duration <= 0:
            raise ValueError(f"sponsorship.proposal_duration_ns must be > 0, got {duration}")
        if self.storage_byte_price() < 0:
            raise ValueError("host.storage_byte_price must be >= 0")
        # BadgeConfig enforces its own ranges
        self.badge_config()

    def owner_id(self) -> Optional[str]:
        return self._params.get("owner_id")

    def sponsorship_tags(self) -> list[str]:
        return list(self._params.get("sponsorship", {}).get("tags", []))

    def proposal_duration(self) -> Optional[int]:
        value = self._params.get("sponsorship", {}).get("proposal_duration_ns")
        return int(value) if value is not None else None

    def badge_config(self) -> BadgeConfig:
        badges = self._params["badges"]
        return BadgeConfig(
            rate_per_day=int(badges["rate_per_day"]),
            max_active_duration=int(badges["max_active_duration_ns"]),
            min_creation_deposit=int(badges.get("min_creation_deposit", "0")),
        )

    def storage_byte_price(self) -> int:
        value = self._params.get("host", {}).get("storage_byte_price")
        return int(value) if value is not None else DEFAULT_STORAGE_BYTE_PRICE
