"""
repository.py
In-memory member store keyed by member id (case-insensitive).
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from models import Member

logger = logging.getLogger(__name__)


def _key(member_id: str | None) -> str | None:
    return None if member_id is None else member_id.casefold()


class MemberRepository:
    """
    Holds at most one Member per id. Lookups ignore case.

    Mutations report success as a bool rather than raising, so callers decide
    what a duplicate add or a missing id means for them.
    """

    def __init__(self, members: Iterable[Member] = ()):
        self._members: dict[str, Member] = {}
        self.replace_all(members)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Member]:
        return iter(list(self._members.values()))

    def is_empty(self) -> bool:
        return not self._members

    def all(self) -> list[Member]:
        return list(self._members.values())

    def add(self, member: Member | None) -> bool:
        if member is None:
            return False
        key = _key(member.member_id)
        if key in self._members:
            return False
        self._members[key] = member
        logger.debug("Added member %s", member.member_id)
        return True

    def delete(self, member_id: str | None) -> bool:
        removed = self._members.pop(_key(member_id), None)
        if removed is None:
            return False
        logger.debug("Deleted member %s", removed.member_id)
        return True

    def find_by_id(self, member_id: str | None) -> Member | None:
        return self._members.get(_key(member_id))

    def find_by_name_contains(self, text: str) -> list[Member]:
        needle = text.casefold()
        return [m for m in self._members.values() if needle in m.full_name.casefold()]

    def replace(self, member_id: str | None, updated: Member | None) -> bool:
        """
        Install `updated` in place of the member stored under `member_id`.

        When `updated` has no performance history the old history is copied
        into it first; a non-empty history is taken as already merged.
        """
        old_key = _key(member_id)
        old = self._members.get(old_key)
        if old is None or updated is None:
            return False

        new_key = _key(updated.member_id)
        if new_key != old_key and new_key in self._members:
            logger.warning(
                "Refusing to replace %s with %s: id already in use", member_id, updated.member_id
            )
            return False

        if not updated.performance_history:
            for p in old.performance_history:
                updated.add_or_replace_performance(p)

        if new_key == old_key:
            self._members[old_key] = updated
        else:
            # keep the replaced entry's position
            self._members = {
                (new_key if k == old_key else k): (updated if k == old_key else m)
                for k, m in self._members.items()
            }
        logger.debug("Replaced member %s", updated.member_id)
        return True

    def replace_all(self, members: Iterable[Member]) -> None:
        self._members = {}
        for member in members:
            if not self.add(member) and member is not None:
                logger.warning("Dropping duplicate member id %s", member.member_id)
