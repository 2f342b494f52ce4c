"""
utils.py
Validation, dates, DataFrame views, exports, sample data.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation

import pandas as pd

from models import (
    Member,
    Performance,
    PersonalTrainingPlan,
    PremiumPlan,
    YearMonth,
    fee_breakdown,
)
from repository import MemberRepository


def parse_year_month(text: str) -> YearMonth | None:
    try:
        return YearMonth.parse(text)
    except ValueError:
        return None


def parse_money(value) -> Decimal | None:
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def validate_member_inputs(first_name: str, last_name: str, age, base_fee, require_positive_age: bool = False) -> list[str]:
    errors: list[str] = []
    if not first_name.strip():
        errors.append("First name is required.")
    if not last_name.strip():
        errors.append("Last name is required.")
    try:
        if require_positive_age and int(age) <= 0:
            errors.append("Age must be positive.")
    except (TypeError, ValueError):
        errors.append("Age must be a whole number.")
    fee = parse_money(base_fee)
    if fee is None:
        errors.append("Base fee must be numeric.")
    elif fee < 0:
        errors.append("Base fee cannot be negative.")
    return errors


def validate_plan_inputs(kind: str, sessions_per_month=0, fee_per_session=0, premium_service_fee=0) -> list[str]:
    errors: list[str] = []
    if kind == PersonalTrainingPlan.kind:
        try:
            if int(sessions_per_month) < 0:
                errors.append("Sessions per month cannot be negative.")
        except (TypeError, ValueError):
            errors.append("Sessions per month must be a whole number.")
        fee = parse_money(fee_per_session)
        if fee is None or fee < 0:
            errors.append("Fee per session must be a non-negative number.")
    elif kind == PremiumPlan.kind:
        fee = parse_money(premium_service_fee)
        if fee is None or fee < 0:
            errors.append("Premium service fee must be a non-negative number.")
    return errors


def members_frame(members: list[Member]) -> pd.DataFrame:
    columns = ["id", "type", "name", "age", "join_date", "base_fee", "plan_extra", "performances", "avg_rating"]
    rows = []
    for m in members:
        extra = ""
        if isinstance(m.plan, PersonalTrainingPlan):
            extra = f"{m.plan.sessions_per_month} x {m.plan.fee_per_session:.2f}"
        elif isinstance(m.plan, PremiumPlan):
            extra = f"spa {m.plan.premium_service_fee:.2f}" if m.plan.spa_access else "no spa"
        rows.append(
            {
                "id": m.member_id,
                "type": m.kind,
                "name": m.full_name,
                "age": m.age,
                "join_date": m.join_date.isoformat(),
                "base_fee": float(m.base_fee),
                "plan_extra": extra,
                "performances": len(m.performance_history),
                "avg_rating": round(m.average_rating, 2),
            }
        )
    return pd.DataFrame(rows, columns=columns)


def performances_frame(member: Member) -> pd.DataFrame:
    rows = [
        {
            "month": str(p.month),
            "goal_achieved": p.goal_achieved,
            "rating": p.rating,
            "positive": p.is_positive,
            "notes": p.notes,
        }
        for p in member.performance_history
    ]
    return pd.DataFrame(rows, columns=["month", "goal_achieved", "rating", "positive", "notes"])


def fee_summary_for_month(members: list[Member], month: YearMonth) -> pd.DataFrame:
    columns = ["id", "name", "type", "base", "extra", "discount", "penalty", "total"]
    rows = []
    for m in members:
        b = fee_breakdown(m, month)
        rows.append(
            {
                "id": m.member_id,
                "name": m.full_name,
                "type": m.kind,
                "base": float(b.base),
                "extra": float(b.extra),
                "discount": float(b.discount),
                "penalty": float(b.penalty),
                "total": float(b.total),
            }
        )
    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values("total", ascending=False, ignore_index=True)


def members_to_csv_bytes(members: list[Member]) -> bytes:
    return members_frame(members).to_csv(index=False).encode("utf-8")


def sample_members(id_factory=None) -> list[Member]:
    """
    Three members, one per plan, with a couple of recent performance entries.
    """
    kwargs = {"id_factory": id_factory} if id_factory else {}
    today = date.today()
    this_month = YearMonth.from_date(today)
    last_month = YearMonth(today.year - 1, 12) if today.month == 1 else YearMonth(today.year, today.month - 1)

    regular = Member.create("Ahmed", "Hassan", 29, today, Decimal("300"), **kwargs)
    trainee = Member.create(
        "Mona", "Ali", 34, today, Decimal("250"), PersonalTrainingPlan(4, Decimal("40")), **kwargs
    )
    premium = Member.create(
        "Omar", "Samy", 41, today, Decimal("400"), PremiumPlan(True, Decimal("75")), **kwargs
    )

    regular.add_or_replace_performance(Performance(regular.member_id, last_month, False, 2, "Missed sessions"))
    trainee.add_or_replace_performance(Performance(trainee.member_id, last_month, True, 4, "Hit target weight"))
    trainee.add_or_replace_performance(Performance(trainee.member_id, this_month, False, 5, ""))
    return [regular, trainee, premium]


def seed_repository(repository: MemberRepository, id_factory=None) -> int:
    """Adds the sample members; returns how many were added."""
    return sum(1 for m in sample_members(id_factory) if repository.add(m))
