"""Timestamp model shared by entries and groups."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds (KDBX resolution)."""
    return datetime.now(UTC).replace(microsecond=0)


@dataclass
class Times:
    """Timestamps for an entry or group.

    All times are timezone-aware UTC datetimes. A time may be None when the
    source document did not carry it; comparisons treat a missing time as
    older than any real one.

    Attributes:
        creation_time: When the element was created
        last_modification_time: When the element was last modified
        last_access_time: When the element was last accessed
        expiry_time: When the element expires (only meaningful if expires)
        expires: Whether the element expires
        usage_count: Number of times the element was used
        location_changed: When the element was last moved to another group
    """

    creation_time: datetime | None = None
    last_modification_time: datetime | None = None
    last_access_time: datetime | None = None
    expiry_time: datetime | None = None
    expires: bool = False
    usage_count: int = 0
    location_changed: datetime | None = None

    @property
    def expired(self) -> bool:
        """Check if the element has expired."""
        if not self.expires or self.expiry_time is None:
            return False
        return self.expiry_time <= utc_now()

    def touch(self, modify: bool = False) -> None:
        """Update access time, optionally modification time."""
        now = utc_now()
        self.last_access_time = now
        if modify:
            self.last_modification_time = now

    def update_location(self) -> None:
        """Record that the element moved to a different group."""
        self.location_changed = utc_now()

    @classmethod
    def create_new(
        cls,
        expires: bool = False,
        expiry_time: datetime | None = None,
    ) -> Times:
        """Create timestamps for a newly created element.

        Args:
            expires: Whether the element expires
            expiry_time: Expiration time

        Returns:
            Times with creation, modification and access set to now
        """
        now = utc_now()
        return cls(
            creation_time=now,
            last_modification_time=now,
            last_access_time=now,
            expiry_time=expiry_time,
            expires=expires,
            location_changed=now,
        )
