from collections.abc import Iterable

from .types import DoseEvent


def split_events_by_route(events: Iterable[DoseEvent]) -> dict[str, list[DoseEvent]]:
    """
    Group dose events by route.

    Routes appear in order of first occurrence; events keep their input order.
    """
    buckets: dict[str, list[DoseEvent]] = {}
    for e in events:
        buckets.setdefault(e.route, []).append(e)
    return buckets
