"""
services.py
Member workflows on top of the repository: plan changes, profile edits,
performance recording and snapshot load/save.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import date
from decimal import Decimal

import storage
from models import (
    Member,
    Performance,
    PersonalTrainingPlan,
    PremiumPlan,
    RegularPlan,
    YearMonth,
    to_money,
)
from repository import MemberRepository

logger = logging.getLogger(__name__)


def rebuild_member(old: Member, **changes) -> Member:
    """
    New Member with the same id as `old`, the given field changes applied,
    and every performance entry of `old` carried over.
    """
    if "member_id" in changes:
        raise ValueError("member_id cannot change when rebuilding a member")
    updated = dataclasses.replace(old, **changes)
    for p in old.performance_history:
        updated.add_or_replace_performance(p)
    return updated


def install_member(repository: MemberRepository, old_id: str, updated: Member) -> None:
    if not repository.replace(old_id, updated):
        logger.warning("Member %s vanished during replace; re-adding", old_id)
        repository.delete(old_id)
        repository.add(updated)


def _update(repository: MemberRepository, member_id: str, **changes) -> Member | None:
    old = repository.find_by_id(member_id)
    if old is None:
        return None
    updated = rebuild_member(old, **changes)
    install_member(repository, old.member_id, updated)
    return updated


def change_base_fee(repository: MemberRepository, member_id: str, base_fee) -> Member | None:
    return _update(repository, member_id, base_fee=to_money(base_fee))


def convert_to_regular(repository: MemberRepository, member_id: str, base_fee) -> Member | None:
    return _update(repository, member_id, base_fee=to_money(base_fee), plan=RegularPlan())


def convert_to_personal_training(
    repository: MemberRepository,
    member_id: str,
    base_fee,
    sessions_per_month: int,
    fee_per_session,
) -> Member | None:
    plan = PersonalTrainingPlan(sessions_per_month, to_money(fee_per_session))
    return _update(repository, member_id, base_fee=to_money(base_fee), plan=plan)


def convert_to_premium(
    repository: MemberRepository,
    member_id: str,
    base_fee,
    spa_access: bool,
    premium_service_fee=Decimal("0"),
) -> Member | None:
    plan = PremiumPlan(spa_access, to_money(premium_service_fee))
    return _update(repository, member_id, base_fee=to_money(base_fee), plan=plan)


def edit_personal_details(
    repository: MemberRepository,
    member_id: str,
    first_name: str | None = None,
    last_name: str | None = None,
    age: int | None = None,
    join_date: date | None = None,
) -> Member | None:
    """Blank or None values keep what the member already has."""
    old = repository.find_by_id(member_id)
    if old is None:
        return None
    return _update(
        repository,
        member_id,
        first_name=(first_name or "").strip() or old.first_name,
        last_name=(last_name or "").strip() or old.last_name,
        age=old.age if age is None else age,
        join_date=join_date or old.join_date,
    )


def record_performance(
    repository: MemberRepository,
    member_id: str,
    month: YearMonth,
    goal_achieved: bool,
    rating: int,
    notes: str = "",
) -> Performance | None:
    """Record (or overwrite) the member's performance for `month`."""
    member = repository.find_by_id(member_id)
    if member is None:
        return None
    performance = Performance(member.member_id, month, goal_achieved, rating, notes)
    member.add_or_replace_performance(performance)
    return performance


# ---------- Snapshots ----------

def read_snapshot(members_path, performances_path=None) -> list[Member]:
    """Load members (plus their history when a performances file is given) without touching a repository."""
    members = storage.load_members(members_path)
    if performances_path is not None:
        performances = storage.load_performances(performances_path)
        storage.attach_performances_to_members(members, performances)
    return members


def view_snapshot(members_path, performances_path=None) -> MemberRepository:
    """A separate, queryable repository over the files; the working roster is not involved."""
    return MemberRepository(read_snapshot(members_path, performances_path))


def load_snapshot(repository: MemberRepository, members_path, performances_path=None) -> int:
    """
    Replace the repository contents with what is on disk.
    Nothing changes if either file fails to load.
    """
    members = read_snapshot(members_path, performances_path)
    repository.replace_all(members)
    return len(repository)


def save_snapshot(
    repository: MemberRepository,
    members_path=storage.MEMBERS_FILE,
    performances_path=storage.PERFORMANCES_FILE,
) -> None:
    members = repository.all()
    storage.save_members(members, members_path)
    storage.save_member_performances(members, performances_path)
