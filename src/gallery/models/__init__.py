"""Core data models for Stats Gallery."""

from gallery.models.badge import (
    BADGE_TAGS,
    ONE_DAY,
    TAG_BADGE_CREATE,
    TAG_BADGE_EXTEND,
    Badge,
    BadgeAction,
    BadgeCreate,
    BadgeExtend,
    billable_days,
)
from gallery.models.sponsorship import (
    PROPOSAL_TRANSITIONS,
    Proposal,
    ProposalStatus,
    ProposalSubmission,
)

__all__ = [
    "BADGE_TAGS",
    "ONE_DAY",
    "TAG_BADGE_CREATE",
    "TAG_BADGE_EXTEND",
    "Badge",
    "BadgeAction",
    "BadgeCreate",
    "BadgeExtend",
    "billable_days",
    "PROPOSAL_TRANSITIONS",
    "Proposal",
    "ProposalStatus",
    "ProposalSubmission",
]
