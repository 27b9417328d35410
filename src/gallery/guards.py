"""Call-intent guards shared by privileged entry points."""

from __future__ import annotations

from gallery.errors import ConfirmationRequired, InvalidAmount

ONE_UNIT = 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


def assert_one_unit(attached: int) -> None:
    """Privileged mutations must attach exactly one smallest unit.

    Not a charge: it proves the caller signed a state-changing call.
    Must run before any other validation.
    """
    if attached != ONE_UNIT:
        raise ConfirmationRequired(attached)


def check_u64(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U64_MAX:
        raise InvalidAmount(f"{name} must be an integer in [0, 2^64), got {value!r}")
    return value


def check_u128(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U128_MAX:
        raise InvalidAmount(f"{name} must be an integer in [0, 2^128), got {value!r}")
    return value
