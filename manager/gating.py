from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Tuple


def unlocked_chapters(topics: Sequence[Any], progress: Iterable[Any]) -> Dict[Any, bool]:
    """Decide which chapters of a course a user may open.

    The chapter at order index 1 is always unlocked; the chapter at index i > 1
    is unlocked only when the chapter at index i - 1 has a completed progress
    record. Computed from scratch on every call, never stored.
    """
    completed = {record.topic_id for record in progress if record.is_completed}
    by_order = {topic.order_index: topic for topic in topics}

    unlocked: Dict[Any, bool] = {}
    for topic in topics:
        if topic.order_index == 1:
            unlocked[topic.id] = True
            continue
        previous = by_order.get(topic.order_index - 1)
        unlocked[topic.id] = previous is not None and previous.id in completed
    return unlocked


def annotate_unlocked(topics: Sequence[Any], progress: Iterable[Any]) -> List[Tuple[Any, bool]]:
    ordered = sorted(topics, key=lambda topic: topic.order_index)
    flags = unlocked_chapters(ordered, progress)
    return [(topic, flags[topic.id]) for topic in ordered]
