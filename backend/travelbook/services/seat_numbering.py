"""
Seat identity on the fixed 4-seats-per-row grid.

Seats are stored as integers 1..capacity. The display label of seat k is the
row letter followed by the column number:

    row = (k - 1) // 4        letter = 'A' + row
    col = (k - 1) % 4 + 1     label  = f"{letter}{col}"

so seats 1..4 are A1..A4, 5..8 are B1..B4, and so on up to Z4 (104 seats).
Both conversions pass input that is already in the target format through
unchanged, which makes them safe to re-apply.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from travelbook.core.exceptions import ValidationError

SEATS_PER_ROW = 4
ROW_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MAX_SEATS = SEATS_PER_ROW * len(ROW_LETTERS)

_LABEL_RE = re.compile(r"^([A-Z])([1-9]\d*)$")
_NUMERIC_RE = re.compile(r"^\d+$")

SeatInput = Union[int, str]


def seat_label(seat: SeatInput) -> str:
    """Numeric seat -> display label. Labels are returned as-is."""
    if isinstance(seat, str):
        value = seat.strip().upper()
        if _LABEL_RE.match(value):
            seat_number(value)  # rejects columns past the row width
            return value
        if not _NUMERIC_RE.match(value):
            raise ValidationError(f"Invalid seat number: {seat!r}")
        seat = int(value)

    if isinstance(seat, bool) or seat < 1 or seat > MAX_SEATS:
        raise ValidationError(f"Seat number {seat} is outside 1..{MAX_SEATS}")

    row, col = divmod(seat - 1, SEATS_PER_ROW)
    return f"{ROW_LETTERS[row]}{col + 1}"


def seat_number(seat: SeatInput) -> int:
    """Display label -> numeric seat. Numbers are returned as-is."""
    if isinstance(seat, bool):
        raise ValidationError(f"Invalid seat number: {seat!r}")
    if isinstance(seat, int):
        return seat

    value = seat.strip().upper()
    if _NUMERIC_RE.match(value):
        return int(value)

    match = _LABEL_RE.match(value)
    if not match:
        raise ValidationError(f"Invalid seat label: {seat!r}")
    letter, column = match.group(1), int(match.group(2))
    if column > SEATS_PER_ROW:
        raise ValidationError(f"Invalid seat label: {seat!r}")
    return ROW_LETTERS.index(letter) * SEATS_PER_ROW + column


@dataclass(frozen=True, order=True)
class Seat:
    """A seat with both representations computed once."""

    number: int
    label: str

    @classmethod
    def parse(cls, value: Union["Seat", SeatInput], capacity: Optional[int] = None) -> "Seat":
        if isinstance(value, Seat):
            seat = value
        else:
            number = seat_number(value)
            seat = cls(number=number, label=seat_label(number))
        if capacity is not None and not 1 <= seat.number <= capacity:
            raise ValidationError(f"Seat {seat.label} does not exist (capacity {capacity})")
        return seat

    def __str__(self) -> str:
        return self.label


def all_seats(capacity: int) -> list[Seat]:
    if not 1 <= capacity <= MAX_SEATS:
        raise ValidationError(f"Capacity must be between 1 and {MAX_SEATS}")
    return [Seat(number=n, label=seat_label(n)) for n in range(1, capacity + 1)]
