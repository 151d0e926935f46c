"""Deterministic seat maps for seat-selection flights.

Rows are lettered ``A`` to ``Z`` with ten seats each, so a flight with
``max_tickets=12`` has ``A1 .. A10, B1, B2``.
"""
import string
from typing import Iterable, List

ROWS = string.ascii_uppercase
SEATS_PER_ROW = 10
MAX_SEAT_MAP_SIZE = len(ROWS) * SEATS_PER_ROW


def generate_seat_labels(max_tickets: int) -> List[str]:
    if max_tickets > MAX_SEAT_MAP_SIZE:
        raise ValueError(f"Seat maps hold at most {MAX_SEAT_MAP_SIZE} seats")
    return [f"{ROWS[i // SEATS_PER_ROW]}{i % SEATS_PER_ROW + 1}" for i in range(max_tickets)]


def seat_index(label: str) -> int:
    """Position of ``label`` in any seat map, or -1 when it is not a seat label."""
    if len(label) < 2 or label[0] not in ROWS or not label[1:].isdigit() or label[1] == "0":
        return -1
    number = int(label[1:])
    if not 1 <= number <= SEATS_PER_ROW:
        return -1
    return ROWS.index(label[0]) * SEATS_PER_ROW + number - 1


def labels_outside_map(labels: Iterable[str], max_tickets: int) -> List[str]:
    """Labels that do not exist on a map of ``max_tickets`` seats, in input order."""
    return [label for label in labels if not 0 <= seat_index(label) < max_tickets]
