"""Publish/subscribe feed for projection updates.

The session repository is the single producer. Each publish carries the new
projection and a notification saying what changed: either everything
(:class:`FullRefresh`) or a known set of snapshot ids
(:class:`EntriesChanged`).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias, assert_never

from retrace.git.models import Snapshot
from retrace.logging import get_logger
from retrace.session.projection import Projection

__all__ = [
    "EntriesChanged",
    "FullRefresh",
    "Notification",
    "ProjectionFeed",
    "Subscriber",
    "affected_snapshots",
]

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FullRefresh:
    """Timeline entries were added or removed; re-read everything."""


@dataclass(frozen=True, slots=True)
class EntriesChanged:
    """Only the listed snapshots need re-rendering.

    Attributes:
        ids: Snapshot ids whose display may have changed.
    """

    ids: frozenset[str]


Notification: TypeAlias = FullRefresh | EntriesChanged

Subscriber: TypeAlias = Callable[[Projection, Notification], None]


def affected_snapshots(
    projection: Projection, notification: Notification
) -> list[Snapshot]:
    """Snapshots on the timeline that a notification asks to re-render."""
    if isinstance(notification, FullRefresh):
        ids = list(projection.ordered_ids)
    elif isinstance(notification, EntriesChanged):
        ids = [i for i in projection.ordered_ids if i in notification.ids]
    else:
        assert_never(notification)
    return [projection.snapshots[i] for i in ids]


class ProjectionFeed:
    """Holds the last published projection and its subscribers.

    Subscribers are called synchronously, in registration order. A late
    subscriber is immediately handed the current projection with a
    :class:`FullRefresh`.
    """

    def __init__(self) -> None:
        self._current: Projection | None = None
        self._subscribers: list[Subscriber] = []

    @property
    def current(self) -> Projection | None:
        """Last published projection, or None before the first publish."""
        return self._current

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)
        if self._current is not None:
            callback(self._current, FullRefresh())

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, projection: Projection, notification: Notification) -> None:
        """Replace the current projection and notify every subscriber."""
        self._current = projection
        logger.debug(
            "projection_published",
            branch=projection.branch,
            head=projection.head,
            notification=type(notification).__name__,
        )
        for callback in list(self._subscribers):
            callback(projection, notification)
