"""
Todos feature: Eisenhower priority <-> board position mapping.

Todos live on a 100x100 board. The x axis is urgency (left = urgent),
the y axis is importance (top = important); 50 splits both axes.
"""

from typing import Literal

Priority = Literal["do_first", "schedule", "delegate", "eliminate"]

DEFAULT_PRIORITY: Priority = "do_first"
QUADRANT_BOUNDARY = 50

PRIORITY_POSITIONS: dict[str, tuple[int, int]] = {
    "do_first": (15, 15),   # urgent & important (top-left)
    "schedule": (85, 15),   # important, not urgent (top-right)
    "delegate": (15, 85),   # urgent, not important (bottom-left)
    "eliminate": (85, 85),  # neither (bottom-right)
}

QUADRANT_LABELS: dict[str, str] = {
    "do_first": "Do First (urgent & important)",
    "schedule": "Schedule (important, not urgent)",
    "delegate": "Delegate (urgent, not important)",
    "eliminate": "Eliminate (not urgent, not important)",
}


def priority_to_position(priority: str | None) -> tuple[int, int]:
    """Board coordinates for a priority; unknown or missing means do_first."""
    return PRIORITY_POSITIONS.get(priority or DEFAULT_PRIORITY, PRIORITY_POSITIONS[DEFAULT_PRIORITY])


def position_to_priority(position_x: float, position_y: float) -> Priority:
    urgent = position_x < QUADRANT_BOUNDARY
    important = position_y < QUADRANT_BOUNDARY
    if urgent and important:
        return "do_first"
    if important:
        return "schedule"
    if urgent:
        return "delegate"
    return "eliminate"


def quadrant_label(position_x: float, position_y: float) -> str:
    return QUADRANT_LABELS[position_to_priority(position_x, position_y)]
