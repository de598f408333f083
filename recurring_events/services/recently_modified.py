import uuid
from collections.abc import Iterable

from common.types import SessionPayload
from recurring_events.services.dataclasses import ScopedMutationResult, SeriesCreationResult


class RecentlyModifiedRegistry:
    """
    Events and series the current user created or changed recently, used to
    highlight them in listings.

    Instances are owned by the caller (the API layer keeps one per session) and are
    updated from service results. The registry never reaches into the database.
    """

    def __init__(
        self,
        event_ids: Iterable[int] = (),
        recurrence_group_ids: Iterable[uuid.UUID | str] = (),
    ):
        self.event_ids: set[int] = {int(event_id) for event_id in event_ids}
        self.recurrence_group_ids: set[str] = {
            str(group_id) for group_id in recurrence_group_ids
        }

    def mark_events(
        self, event_ids: Iterable[int], recurrence_group_id: uuid.UUID | str | None = None
    ) -> None:
        self.event_ids.update(int(event_id) for event_id in event_ids)
        if recurrence_group_id:
            self.recurrence_group_ids.add(str(recurrence_group_id))

    def mark_creation(self, result: SeriesCreationResult) -> None:
        self.mark_events(result.event_ids, result.recurrence_group_id)

    def mark_mutation(self, result: ScopedMutationResult) -> None:
        """Deleted events are not highlighted, only the series they belonged to."""
        if result.deleted:
            self.event_ids.difference_update(result.event_ids)
            if result.recurrence_group_id:
                self.recurrence_group_ids.add(str(result.recurrence_group_id))
            return
        self.mark_events(result.event_ids, result.recurrence_group_id)

    def is_recent(self, event_id: int, recurrence_group_id: uuid.UUID | str | None = None) -> bool:
        if event_id in self.event_ids:
            return True
        return bool(recurrence_group_id) and str(recurrence_group_id) in self.recurrence_group_ids

    def clear(self) -> None:
        self.event_ids.clear()
        self.recurrence_group_ids.clear()

    def to_dict(self) -> SessionPayload:
        return {
            "event_ids": sorted(self.event_ids),
            "recurrence_group_ids": sorted(self.recurrence_group_ids),
        }

    @classmethod
    def from_dict(cls, data: SessionPayload | None) -> "RecentlyModifiedRegistry":
        data = data or {}
        return cls(
            event_ids=data.get("event_ids", ()),
            recurrence_group_ids=data.get("recurrence_group_ids", ()),
        )
