"""Badge domain — the transition hook that turns accepted proposals into badges."""

from gallery.badges.registry import BadgeConfig, BadgeRegistry

__all__ = ["BadgeConfig", "BadgeRegistry"]
