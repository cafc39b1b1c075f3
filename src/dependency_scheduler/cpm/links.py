# dependency_scheduler/cpm/links.py
"""
Link arithmetic shared by the forward pass, the backward pass and the
calendar projector.

A link "XY" ties end X of the predecessor to end Y of the successor
(S = start, F = finish):

    successor.Y >= predecessor.X + lag

Works for plain day offsets and for calendar dates alike, as long as
`lag` and `duration` are of a type that can be added to the time points
(numbers for offsets, timedeltas for dates).
"""

EARLIEST = "earliest"
LATEST = "latest"


def predecessor_point(link_type: str, start, finish):
    """The predecessor end a link is anchored on."""
    return finish if link_type[0] == "F" else start


def successor_point(link_type: str, start, finish):
    """The successor end a link constrains."""
    return finish if link_type[1] == "F" else start


def start_bound(link_type: str, lag, direction: str, start, finish, duration):
    """
    Bound on a task's start imposed by one dependency.

    earliest: (start, finish) are the predecessor's earliest times and
              `duration` is the successor's; returns a floor on the
              successor's start.
    latest:   (start, finish) are the successor's latest times and
              `duration` is the predecessor's; returns a ceiling on the
              predecessor's start.
    """
    if direction == EARLIEST:
        point = predecessor_point(link_type, start, finish)
        shift = lag - duration if link_type[1] == "F" else lag
        return point + shift
    if direction == LATEST:
        point = successor_point(link_type, start, finish)
        shift = lag + duration if link_type[0] == "F" else lag
        return point - shift
    raise ValueError(f"Unknown direction: {direction}")
