"""
CSV load/save against temporary files, plus the performance attach merge.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

import storage
from models import Member, Performance, PersonalTrainingPlan, PremiumPlan, RegularPlan, YearMonth

MEMBER_HEADER = ",".join(storage.MEMBER_COLUMNS)
PERF_HEADER = ",".join(storage.PERFORMANCE_COLUMNS)


def _write(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_missing_files_load_empty(tmp_path):
    assert storage.load_members(tmp_path / "nope.csv") == []
    assert storage.load_performances(tmp_path / "nope.csv") == []


def test_header_only_and_empty_files(tmp_path):
    assert storage.load_members(_write(tmp_path / "m.csv", [MEMBER_HEADER])) == []
    empty = tmp_path / "empty.csv"
    empty.write_text("", encoding="utf-8")
    assert storage.load_performances(empty) == []


def test_round_trip(tmp_path, regular, trainee, premium):
    regular.first_name = 'Ann "Annie"'
    regular.last_name = "Lee, Jr"
    no_spa = Member("M4", "Dan", "Eve", 52, date(2020, 2, 29), Decimal("60.5"), PremiumPlan(False, Decimal("99")))
    regular.add_performance(Performance("M1", YearMonth(2024, 1), True, 5, 'said "easy", twice'))
    regular.add_performance(Performance("M1", YearMonth(2024, 2), False, 1, ""))
    trainee.add_performance(Performance("M2", YearMonth(2023, 12), False, 4, "multi\nline"))
    members = [regular, trainee, premium, no_spa]

    storage.save_members(members, tmp_path / "out" / "members.csv")
    storage.save_member_performances(members, tmp_path / "out" / "performances.csv")

    loaded = storage.load_members(tmp_path / "out" / "members.csv")
    perfs = storage.load_performances(tmp_path / "out" / "performances.csv")
    assert storage.attach_performances_to_members(loaded, perfs) == 3

    assert loaded == members
    for saved, restored in zip(members, loaded):
        assert type(restored.plan) is type(saved.plan)
        assert {p.month for p in restored.performance_history} == {p.month for p in saved.performance_history}
        for p in saved.performance_history:
            r = restored.get_performance(p.month)
            assert (r.goal_achieved, r.rating, r.notes) == (p.goal_achieved, p.rating, p.notes)

    assert loaded[0].first_name == 'Ann "Annie"'
    assert loaded[0].last_name == "Lee, Jr"
    assert loaded[3].plan == PremiumPlan(False, Decimal("0"))


def test_written_format(tmp_path, trainee):
    path = storage.save_members([trainee], tmp_path / "members.csv")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == MEMBER_HEADER
    assert lines[1] == "M2,PT,Bob,Ray,41,2023-06-01,50.00,4,10.00,,"


def test_save_overwrites(tmp_path, regular, trainee):
    path = tmp_path / "members.csv"
    storage.save_members([regular, trainee], path)
    storage.save_members([trainee], path)
    assert [m.member_id for m in storage.load_members(path)] == ["M2"]


def test_bad_member_rows_are_skipped(tmp_path):
    path = _write(tmp_path / "members.csv", [
        MEMBER_HEADER,
        "M1,REGULAR,Ann,Lee,30,2024-01-05,100.00,,,,",
        "M2,GOLD,Bob,Ray,40,2024-01-05,100.00,,,,",
        "M3,REGULAR,Cy,Do,22",
        'm4,pt,"Dee, Jr","Say ""hi""",abc,2024-02-01,oops,4,10.5,,',
        "M5,Premium,Eve,Fox,33,2021-07-07,70,,,YES,15",
    ])
    members = storage.load_members(path)

    assert [m.member_id for m in members] == ["M1", "m4", "M5"]
    dee = members[1]
    assert (dee.first_name, dee.last_name) == ("Dee, Jr", 'Say "hi"')
    assert dee.age == 0
    assert dee.base_fee == 0
    assert dee.plan == PersonalTrainingPlan(4, Decimal("10.5"))
    assert members[2].plan == PremiumPlan(True, Decimal("15"))
    assert isinstance(members[0].plan, RegularPlan)


def test_malformed_join_date_fails_load(tmp_path):
    path = _write(tmp_path / "members.csv", [
        MEMBER_HEADER,
        "M1,REGULAR,Ann,Lee,30,2024-01-05,100.00,,,,",
        "M2,REGULAR,Bob,Ray,40,05/01/2024,100.00,,,,",
    ])
    with pytest.raises(storage.StorageError):
        storage.load_members(path)


def test_performance_rows(tmp_path):
    path = _write(tmp_path / "performances.csv", [
        PERF_HEADER,
        'M1,2024-01,true,5,"Great, strong"',
        "M1,bad-month,yes,9,",
        "M2,2024-02,false",
        "M3,2024-03,FALSE,x",
    ])
    perfs = storage.load_performances(path)

    assert len(perfs) == 3
    first, second, third = perfs
    assert (first.month, first.goal_achieved, first.rating, first.notes) == (YearMonth(2024, 1), True, 5, "Great, strong")
    assert second.month == YearMonth.current()
    assert second.goal_achieved
    assert second.rating == 3
    assert second.coercions
    assert (third.member_id, third.goal_achieved, third.rating) == ("M3", False, 3)


def test_attach_drops_unknown_members(regular, trainee):
    perfs = [
        Performance("M1", YearMonth(2024, 1), True, 5),
        Performance("M2", YearMonth(2024, 1), False, 2),
        Performance("GHOST", YearMonth(2024, 1), False, 2),
    ]
    assert storage.attach_performances_to_members([regular, trainee], perfs) == 2
    assert len(regular.performance_history) == 1
    assert len(trainee.performance_history) == 1


def test_attach_upserts_by_month(regular):
    regular.add_performance(Performance("M1", YearMonth(2024, 1), False, 1, "old"))
    storage.attach_performances_to_members([regular], [Performance("M1", YearMonth(2024, 1), True, 5, "new")])
    assert len(regular.performance_history) == 1
    assert regular.get_performance(YearMonth(2024, 1)).notes == "new"


def test_archive_snapshot(tmp_path, regular):
    regular.add_performance(Performance("M1", YearMonth(2024, 1), True, 5))
    members_path, perf_path = storage.archive_snapshot([regular], tmp_path / "archive")

    assert members_path.name.startswith("members_") and members_path.suffix == ".csv"
    assert perf_path.name.startswith("performances_")
    assert storage.load_members(members_path) == [regular]
    assert len(storage.load_performances(perf_path)) == 1


def test_blank_join_date_in_full_row_fails_load(tmp_path):
    path = _write(tmp_path / "members.csv", [
        MEMBER_HEADER,
        "M1,REGULAR,Ann,Lee,30,,100,,,,",
    ])
    with pytest.raises(storage.StorageError):
        storage.load_members(path)


def test_six_field_member_row_is_kept(tmp_path):
    path = _write(tmp_path / "members.csv", [
        MEMBER_HEADER,
        "M1,REGULAR,Ann,Lee,30,2024-01-05",
        "M2,REGULAR,Bob,Ray,40,2024-01-05,75,,,,,extra",
    ])
    members = storage.load_members(path)
    assert [m.member_id for m in members] == ["M1", "M2"]
    assert members[0].base_fee == 0
    assert members[1].base_fee == Decimal("75")


def test_four_field_performance_row_defaults_rating(tmp_path):
    path = _write(tmp_path / "performances.csv", [
        PERF_HEADER,
        "M1,2024-01,true,",
        "",
        "M1,2024-02,false",
    ])
    perfs = storage.load_performances(path)
    assert len(perfs) == 1
    assert (perfs[0].month, perfs[0].goal_achieved, perfs[0].rating, perfs[0].notes) == (
        YearMonth(2024, 1), True, 3, ""
    )
