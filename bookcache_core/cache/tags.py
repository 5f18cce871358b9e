"""BookCache Tags - Tag Index and Bulk Invalidation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, List, Optional

if TYPE_CHECKING:
    from bookcache_core.cache.cache import CacheService

logger = logging.getLogger(__name__)

TAG_KEY_PREFIX = "tag_"


class TagTTLPolicy(Enum):
    """How long a tag's member set lives.

    ENTRY: rewritten with the TTL of the write that added a new member.
    FIXED: rewritten with the configured tag TTL when a member is added.
    EXTEND: rewritten on every tagged write, never shortening its life.
    """

    ENTRY = "entry"
    FIXED = "fixed"
    EXTEND = "extend"


def _load_members(data: Any) -> List[str]:
    if not isinstance(data, list) or not all(isinstance(k, str) for k in data):
        raise TypeError(f"Tag member set must be a list of keys, got {type(data).__name__}")
    return list(dict.fromkeys(data))


class TagIndex:
    """Maps a tag to the cache keys written with it.

    The index lives in the cache itself: the members of tag ``t`` are an
    ordinary entry under ``tag_t`` holding a de-duplicated key list, so
    it expires, gets cleared and matches patterns like any other entry.
    Only tag -> keys is recorded. Deleting a key directly leaves it
    listed under its tags until the tag is invalidated or expires.

    Example:
        index = TagIndex(cache)
        index.add("events_list", ["events"], ttl=60)
        index.invalidate("events")
    """

    def __init__(self, cache: "CacheService"):
        """Initialize tag index.

        Args:
            cache: Cache holding both entries and tag sets
        """
        self._cache = cache
        self._lock = threading.RLock()

    @staticmethod
    def tag_key(tag: str) -> str:
        """Get the cache key that stores a tag's member set."""
        return f"{TAG_KEY_PREFIX}{tag}"

    def members(self, tag: str) -> List[str]:
        """Get keys currently recorded under a tag.

        Args:
            tag: Tag name

        Returns:
            Member keys, empty for an unknown or expired tag
        """
        members, _ = self._read(self.tag_key(tag))
        return members

    def add(self, key: str, tags: Iterable[str], ttl: float) -> int:
        """Record ``key`` under each tag.

        A tag set that cannot be written is logged and skipped; the
        entry itself is never rolled back.

        Args:
            key: Cache key already written
            tags: Tag names
            ttl: Resolved TTL of the entry in seconds

        Returns:
            Number of tag sets written
        """
        written = 0
        with self._lock:
            for tag in dict.fromkeys(tags):
                tag_key = self.tag_key(tag)
                members, remaining = self._read(tag_key)

                added = key not in members
                if added:
                    members.append(key)

                tag_ttl = self._resolve_ttl(ttl, remaining, added)
                if tag_ttl is None:
                    continue

                if self._cache.set(tag_key, members, ttl=tag_ttl):
                    written += 1
                else:
                    logger.warning(f"Could not record key {key!r} under tag {tag!r}")
        return written

    def invalidate(self, tag: str) -> int:
        """Delete every key recorded under a tag, then the tag set.

        Args:
            tag: Tag name

        Returns:
            Number of member keys deleted, 0 for an unknown tag
        """
        with self._lock:
            members = self.members(tag)
            deleted = 0
            for key in members:
                if self._cache.delete(key):
                    deleted += 1

            self._cache.delete(self.tag_key(tag))

        logger.debug(f"Invalidated tag {tag!r}: {deleted} keys")
        return deleted

    def _read(self, tag_key: str):
        """Read a tag set and its remaining lifetime in seconds."""
        entry = self._cache.get_entry(tag_key)
        if entry is None:
            return [], None

        try:
            members = _load_members(entry.data)
        except TypeError as e:
            logger.warning(f"Discarding malformed tag set {tag_key!r}: {e}")
            self._cache.delete(tag_key)
            return [], None

        return members, entry.remaining_ttl(self._cache.now())

    def _resolve_ttl(
        self,
        entry_ttl: float,
        remaining: Optional[float],
        added: bool,
    ) -> Optional[float]:
        """Pick the TTL for rewriting a tag set, None to leave it as is."""
        policy = self._cache.config.tag_ttl_policy

        if policy is TagTTLPolicy.EXTEND:
            return max(entry_ttl, remaining or 0.0)
        if not added:
            return None
        if policy is TagTTLPolicy.FIXED:
            return self._cache.config.tag_ttl
        return entry_ttl


__all__ = ["TagIndex", "TagTTLPolicy", "TAG_KEY_PREFIX"]
