"""Stats Gallery — proposal/escrow governance kernel with badge sponsorship."""

__version__ = "0.1.0"
