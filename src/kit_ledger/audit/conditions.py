"""Kit part status cycling and the condition derived from it."""

from typing import Optional

from kit_ledger.utils.constants import (
    CONDITION_DAMAGED,
    CONDITION_EXCELLENT,
    CONDITION_LOST,
    PIECE_DAMAGED,
    PIECE_MISSING,
    PIECE_PRESENT,
)

# unset -> Present -> Missing -> Damaged -> Present -> ...
_NEXT_STATUS = {
    None: PIECE_PRESENT,
    PIECE_PRESENT: PIECE_MISSING,
    PIECE_MISSING: PIECE_DAMAGED,
    PIECE_DAMAGED: PIECE_PRESENT,
}


def next_piece_status(current: Optional[str]) -> str:
    """Status a part moves to on one toggle."""
    return _NEXT_STATUS.get(current, PIECE_PRESENT)


def derive_condition(piece_status: dict[str, str]) -> str:
    """Condition of a kit given its part statuses.

    Lost if any part is Missing, else Damaged if any part is Damaged,
    else Excellent.
    """
    statuses = set(piece_status.values())
    if PIECE_MISSING in statuses:
        return CONDITION_LOST
    if PIECE_DAMAGED in statuses:
        return CONDITION_DAMAGED
    return CONDITION_EXCELLENT
