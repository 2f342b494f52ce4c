"""
Shared fixtures for the member/fee tests.
"""
from __future__ import annotations

import itertools
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

# Make the top-level modules importable when running from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models import Member, PersonalTrainingPlan, PremiumPlan, RegularPlan  # noqa: E402


@pytest.fixture()
def id_factory():
    counter = itertools.count(1)
    return lambda: f"M{next(counter):03d}"


@pytest.fixture()
def regular():
    return Member("M1", "Ann", "Lee", 30, date(2024, 1, 5), Decimal("100"), RegularPlan())


@pytest.fixture()
def trainee():
    return Member(
        "M2", "Bob", "Ray", 41, date(2023, 6, 1), Decimal("50"), PersonalTrainingPlan(4, Decimal("10"))
    )


@pytest.fixture()
def premium():
    return Member("M3", "Cara", "Diaz", 25, date(2022, 3, 9), Decimal("80"), PremiumPlan(True, Decimal("20")))
