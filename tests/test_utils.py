"""
Form validation, parsing helpers, table views and sample data.
"""
from __future__ import annotations

from decimal import Decimal

import utils
from models import Performance, PersonalTrainingPlan, PremiumPlan, YearMonth
from repository import MemberRepository

JAN = YearMonth(2024, 1)


def test_parse_helpers():
    assert utils.parse_year_month(" 2024-03 ") == YearMonth(2024, 3)
    assert utils.parse_year_month("2024-13") is None
    assert utils.parse_money("12.50") == Decimal("12.50")
    assert utils.parse_money("abc") is None
    assert utils.parse_money("nan") is None


def test_validate_member_inputs():
    assert utils.validate_member_inputs("Ann", "Lee", 30, "100") == []
    errors = utils.validate_member_inputs(" ", "", "x", "-5", require_positive_age=True)
    assert errors == [
        "First name is required.",
        "Last name is required.",
        "Age must be a whole number.",
        "Base fee cannot be negative.",
    ]
    assert utils.validate_member_inputs("Ann", "Lee", 0, "1", require_positive_age=True) == ["Age must be positive."]


def test_validate_plan_inputs():
    assert utils.validate_plan_inputs(PersonalTrainingPlan.kind, 4, "10") == []
    assert len(utils.validate_plan_inputs(PersonalTrainingPlan.kind, -1, "-2")) == 2
    assert utils.validate_plan_inputs(PremiumPlan.kind, premium_service_fee="oops") == [
        "Premium service fee must be a non-negative number."
    ]


def test_fee_summary_sorted_by_total(regular, trainee, premium):
    regular.add_performance(Performance("M1", JAN, False, 1))
    df = utils.fee_summary_for_month([trainee, regular, premium], JAN)
    assert list(df["id"]) == ["M1", "M3", "M2"]
    assert list(df["total"]) == [110.0, 100.0, 90.0]
    assert df.loc[0, "penalty"] == 10.0


def test_members_frame_and_csv(regular, trainee, premium):
    df = utils.members_frame([regular, trainee, premium])
    assert list(df["plan_extra"]) == ["", "4 x 10.00", "spa 20.00"]
    text = utils.members_to_csv_bytes([regular]).decode("utf-8")
    assert text.splitlines()[0].startswith("id,type,name")
    assert "Ann Lee" in text


def test_seed_repository(id_factory):
    repo = MemberRepository()
    assert utils.seed_repository(repo, id_factory) == 3
    assert [m.member_id for m in repo] == ["M001", "M002", "M003"]
    assert len(repo.find_by_id("M002").performance_history) == 2
