"""Deployment parameters."""

from gallery.policy.resolver import PolicyResolver

__all__ = ["PolicyResolver"]
