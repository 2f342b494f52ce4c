"""
models.py
Domain model: months, performance entries, membership plans, members and fees.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, ClassVar

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Fee adjustments driven by the month's performance entry
DISCOUNT_RATE = Decimal("0.10")
LOW_RATING_PENALTY = Decimal("10")
LOW_RATING_THRESHOLD = 2

MIN_RATING = 1
MAX_RATING = 5
DEFAULT_RATING = 3

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def to_money(value) -> Decimal:
    """
    Accepts Decimal, int, float or numeric text.
    Floats go through str() so 19.99 stays 19.99 instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def _hex_token() -> str:
    return uuid.uuid4().hex[:8]


def new_member_id() -> str:
    return "M" + _hex_token()


def placeholder_member_id() -> str:
    return "UNKNOWN-" + _hex_token()


@dataclass(frozen=True, order=True)
class YearMonth:
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be 1-12, got {self.month}")

    @classmethod
    def parse(cls, text: str) -> YearMonth:
        match = _YEAR_MONTH_RE.match(text.strip())
        if not match:
            raise ValueError(f"Expected YYYY-MM, got {text!r}")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def from_date(cls, d: date) -> YearMonth:
        return cls(d.year, d.month)

    @classmethod
    def current(cls) -> YearMonth:
        return cls.from_date(date.today())

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True, eq=False)
class Performance:
    """
    One month's evaluation for one member.

    Construction never fails: a blank member id, missing month, out-of-range
    rating or missing notes are replaced with safe defaults. Every replacement
    is listed in `coercions` and logged, so non-interactive callers can see
    what was defaulted.

    Two entries are the same record when member_id and month match.
    """

    member_id: str | None
    month: YearMonth | None
    goal_achieved: bool = False
    rating: int | None = DEFAULT_RATING
    notes: str | None = ""
    coercions: tuple[str, ...] = field(default=(), init=False, repr=False)

    def __post_init__(self):
        applied: list[str] = []

        if self.member_id is None or not str(self.member_id).strip():
            object.__setattr__(self, "member_id", placeholder_member_id())
            applied.append(f"member_id was blank; using {self.member_id}")

        if self.month is None:
            object.__setattr__(self, "month", YearMonth.current())
            applied.append(f"month was missing; using {self.month}")

        if self.rating is None or not MIN_RATING <= self.rating <= MAX_RATING:
            applied.append(
                f"rating {self.rating!r} outside {MIN_RATING}-{MAX_RATING}; using {DEFAULT_RATING}"
            )
            object.__setattr__(self, "rating", DEFAULT_RATING)

        if self.notes is None:
            object.__setattr__(self, "notes", "")

        object.__setattr__(self, "goal_achieved", bool(self.goal_achieved))

        for message in applied:
            logger.warning("Performance %s %s: %s", self.member_id, self.month, message)
        object.__setattr__(self, "coercions", tuple(applied))

    @property
    def is_positive(self) -> bool:
        return self.goal_achieved or self.rating >= 4

    def __eq__(self, other):
        if not isinstance(other, Performance):
            return NotImplemented
        return self.member_id == other.member_id and self.month == other.month

    def __hash__(self):
        return hash((self.member_id, self.month))

    def __str__(self) -> str:
        return (
            f"Month: {self.month}, Goal Achieved: {self.goal_achieved}, "
            f"Rating: {self.rating}, Notes: {self.notes}"
        )


# ---------- Membership plans ----------

@dataclass(frozen=True)
class RegularPlan:
    kind: ClassVar[str] = "REGULAR"
    label: ClassVar[str] = "Regular"


@dataclass(frozen=True)
class PersonalTrainingPlan:
    kind: ClassVar[str] = "PT"
    label: ClassVar[str] = "Personal Training"

    sessions_per_month: int = 0
    fee_per_session: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "fee_per_session", to_money(self.fee_per_session))


@dataclass(frozen=True)
class PremiumPlan:
    kind: ClassVar[str] = "PREMIUM"
    label: ClassVar[str] = "Premium"

    spa_access: bool = False
    premium_service_fee: Decimal = ZERO

    def __post_init__(self):
        # Premium services are only billed together with spa access
        fee = to_money(self.premium_service_fee) if self.spa_access else ZERO
        object.__setattr__(self, "spa_access", bool(self.spa_access))
        object.__setattr__(self, "premium_service_fee", fee)


Plan = RegularPlan | PersonalTrainingPlan | PremiumPlan

PLAN_TYPES: dict[str, type] = {
    RegularPlan.kind: RegularPlan,
    PersonalTrainingPlan.kind: PersonalTrainingPlan,
    PremiumPlan.kind: PremiumPlan,
}


def variant_extra(plan: Plan) -> Decimal:
    if isinstance(plan, PersonalTrainingPlan):
        return plan.sessions_per_month * plan.fee_per_session
    if isinstance(plan, PremiumPlan):
        return plan.premium_service_fee
    return ZERO


# ---------- Members ----------

@dataclass
class Member:
    member_id: str
    first_name: str
    last_name: str
    age: int
    join_date: date
    base_fee: Decimal
    plan: Plan = field(default_factory=RegularPlan)
    _history: list[Performance] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        for name in ("member_id", "first_name", "last_name", "join_date"):
            if getattr(self, name) is None:
                raise TypeError(f"{name} is required")
        self.base_fee = to_money(self.base_fee)

    @classmethod
    def create(
        cls,
        first_name: str,
        last_name: str,
        age: int,
        join_date: date,
        base_fee,
        plan: Plan | None = None,
        id_factory: Callable[[], str] = new_member_id,
    ) -> Member:
        """Build a brand-new member with a generated id."""
        return cls(id_factory(), first_name, last_name, age, join_date, base_fee, plan or RegularPlan())

    @property
    def kind(self) -> str:
        return self.plan.kind

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def performance_history(self) -> tuple[Performance, ...]:
        return tuple(self._history)

    def _owns(self, performance: Performance | None) -> bool:
        return performance is not None and performance.member_id == self.member_id

    def add_performance(self, performance: Performance | None) -> bool:
        """Strict add: rejects other members' entries and months already recorded."""
        if not self._owns(performance):
            return False
        if self.get_performance(performance.month) is not None:
            return False
        self._history.append(performance)
        return True

    def add_or_replace_performance(self, performance: Performance | None) -> bool:
        if not self._owns(performance):
            return False
        for i, existing in enumerate(self._history):
            if existing.month == performance.month:
                self._history[i] = performance
                return True
        self._history.append(performance)
        return True

    def get_performance(self, month: YearMonth) -> Performance | None:
        for p in self._history:
            if p.month == month:
                return p
        return None

    def remove_performance(self, month: YearMonth) -> bool:
        before = len(self._history)
        self._history = [p for p in self._history if p.month != month]
        return len(self._history) != before

    @property
    def latest_performance(self) -> Performance | None:
        return self._history[-1] if self._history else None

    @property
    def average_rating(self) -> float:
        if not self._history:
            return 0.0
        return sum(p.rating for p in self._history) / len(self._history)

    def calculate_monthly_fee(self, month: YearMonth) -> Decimal:
        return monthly_fee(self, month)

    def summary(self) -> str:
        return (
            f"ID: {self.member_id} | {self.full_name} | Joined: {self.join_date.isoformat()} "
            f"| Base Fee: ${self.base_fee:.2f}"
        )

    def __str__(self) -> str:
        details = f"[{self.plan.label} Member] {self.summary()}"
        if isinstance(self.plan, PersonalTrainingPlan):
            details += (
                f" | Sessions/Month: {self.plan.sessions_per_month}"
                f" | Fee/Session: ${self.plan.fee_per_session:.2f}"
            )
        elif isinstance(self.plan, PremiumPlan):
            details += (
                f" | Spa Access: {'Yes' if self.plan.spa_access else 'No'}"
                f" | Premium Fee: ${self.plan.premium_service_fee:.2f}"
            )
        return details


# ---------- Fees ----------

@dataclass(frozen=True)
class FeeBreakdown:
    month: YearMonth
    base: Decimal
    extra: Decimal
    discount: Decimal
    penalty: Decimal
    total: Decimal
    performance: Performance | None

    @property
    def subtotal(self) -> Decimal:
        return self.base + self.extra


def fee_breakdown(member: Member, month: YearMonth) -> FeeBreakdown:
    """
    Monthly fee for `member` in `month`.

    subtotal = base fee + plan extra. A performance entry for exactly that month
    gives a 10% discount when the goal was achieved, otherwise a flat +10 when
    the rating is 2 or lower. Never both. The total is never negative.
    """
    base = member.base_fee
    extra = variant_extra(member.plan)
    subtotal = base + extra
    discount = ZERO
    penalty = ZERO

    performance = member.get_performance(month)
    if performance is not None:
        if performance.goal_achieved:
            discount = subtotal * DISCOUNT_RATE
        elif performance.rating <= LOW_RATING_THRESHOLD:
            penalty = LOW_RATING_PENALTY

    total = max(subtotal - discount + penalty, ZERO)
    return FeeBreakdown(month, base, extra, discount, penalty, total, performance)


def monthly_fee(member: Member, month: YearMonth) -> Decimal:
    return fee_breakdown(member, month).total
