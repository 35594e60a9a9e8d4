"""
In-process presence registry for the chat socket.

Maps a user id to the single channel currently holding that user's live
connection.  Nothing is persisted: a restart is the same as everyone
disconnecting.  All mutations happen on the event loop, so there is no
lock; instead every removal checks that the closing channel is still the
connection of record for the user.

The registry is per process.  With several ASGI workers each one only
knows its own sockets.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PresenceEntry:
    user_id: int
    username: str
    channel_name: str


class PresenceRegistry:
    def __init__(self) -> None:
        self._entries: dict[int, PresenceEntry] = {}

    def register(self, user_id: int, username: str, channel_name: str) -> Optional[str]:
        """Make ``channel_name`` the user's connection of record.

        Returns the channel it replaced, if any, so the caller can close it.
        """
        previous = self._entries.get(user_id)
        self._entries[user_id] = PresenceEntry(user_id, username, channel_name)
        if previous is not None and previous.channel_name != channel_name:
            return previous.channel_name
        return None

    def unregister(self, user_id: int, channel_name: str) -> bool:
        """Drop the user only if ``channel_name`` is still their connection."""
        current = self._entries.get(user_id)
        if current is None or current.channel_name != channel_name:
            return False
        del self._entries[user_id]
        return True

    def channel_for(self, user_id) -> Optional[str]:
        entry = self._entries.get(user_id)
        return entry.channel_name if entry else None

    def is_current(self, user_id: int, channel_name: str) -> bool:
        return self.channel_for(user_id) == channel_name

    def roster(self) -> list[dict]:
        return [{'id': e.user_id, 'username': e.username} for e in sorted(self._entries.values(), key=lambda e: e.user_id)]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


registry = PresenceRegistry()
