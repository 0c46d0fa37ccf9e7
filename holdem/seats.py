from __future__ import annotations

from typing import NamedTuple, Optional, Sequence


class SeatView(NamedTuple):
    """Immutable view of one occupied seat, enough to resolve turn order."""

    seat: int
    folded: bool
    all_in: bool
    stack: int


def next_seat(
    views: Sequence[SeatView],
    from_seat: Optional[int],
    table_size: int,
    *,
    include_folded: bool = False,
    include_all_in: bool = False,
    require_stack: bool = False,
) -> Optional[int]:
    """First occupied seat strictly after `from_seat` (wrapping) that passes the filter.

    The scan is bounded to one lap of the table, so `from_seat` itself is the
    last candidate. Returns None when nothing qualifies.
    """
    if from_seat is None or not views:
        return None
    by_seat = {view.seat: view for view in views}
    seat = from_seat
    for _ in range(table_size):
        seat = (seat + 1) % table_size
        view = by_seat.get(seat)
        if view is None:
            continue
        if view.folded and not include_folded:
            continue
        if view.all_in and not include_all_in:
            continue
        if require_stack and view.stack <= 0:
            continue
        return seat
    return None
