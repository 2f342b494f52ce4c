"""
app.py
Streamlit Gym Member Fees (single operator).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from decimal import Decimal

import pandas as pd
import streamlit as st

import services
import storage
import utils
from models import (
    PLAN_TYPES,
    Member,
    PersonalTrainingPlan,
    PremiumPlan,
    RegularPlan,
    YearMonth,
    fee_breakdown,
)
from repository import MemberRepository

st.set_page_config(page_title="Gym Member Fees", layout="wide")

logger = logging.getLogger(__name__)

PLAN_LABELS = {cls.label: kind for kind, cls in PLAN_TYPES.items()}


def init_once():
    if "repository" in st.session_state:
        return
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    repo = MemberRepository()
    try:
        services.load_snapshot(repo, storage.MEMBERS_FILE, storage.PERFORMANCES_FILE)
    except storage.StorageError as e:
        logger.error("Starting with an empty roster: %s", e)
        st.session_state.startup_error = str(e)
    st.session_state.repository = repo


def repository() -> MemberRepository:
    return st.session_state.repository


def save_snapshot() -> bool:
    try:
        services.save_snapshot(repository())
    except storage.StorageError as e:
        st.error(f"Failed to save: {e}")
        return False
    return True


def pick_member(label: str = "Member", key: str | None = None) -> Member | None:
    members = repository().all()
    if not members:
        st.info("No members yet. Add one or load records first.")
        return None
    options = {f"{m.full_name} - {m.member_id}": m.member_id for m in members}
    chosen = st.selectbox(label, list(options.keys()), key=key)
    return repository().find_by_id(options[chosen])


def month_input(label: str, key: str) -> YearMonth | None:
    text = st.text_input(label, value=str(YearMonth.current()), key=key)
    month = utils.parse_year_month(text)
    if month is None:
        st.error("Month must be YYYY-MM.")
    return month


def plan_inputs(kind: str, key: str, current=None):
    """Renders the plan-specific fields and returns (plan_kwargs, errors)."""
    if kind == PersonalTrainingPlan.kind:
        pt = current if isinstance(current, PersonalTrainingPlan) else PersonalTrainingPlan()
        c1, c2 = st.columns(2)
        sessions = c1.number_input("Sessions per month", min_value=0, step=1, value=pt.sessions_per_month, key=f"{key}_sessions")
        per = c2.text_input("Fee per session", value=f"{pt.fee_per_session:.2f}", key=f"{key}_per")
        errors = utils.validate_plan_inputs(kind, sessions_per_month=sessions, fee_per_session=per)
        return {"sessions_per_month": int(sessions), "fee_per_session": per}, errors
    if kind == PremiumPlan.kind:
        pm = current if isinstance(current, PremiumPlan) else PremiumPlan()
        c1, c2 = st.columns(2)
        spa = c1.checkbox("Spa access", value=pm.spa_access, key=f"{key}_spa")
        premium = c2.text_input(
            "Premium service fee", value=f"{pm.premium_service_fee:.2f}", key=f"{key}_premium", disabled=not spa
        )
        errors = utils.validate_plan_inputs(kind, premium_service_fee=premium) if spa else []
        return {"spa_access": spa, "premium_service_fee": premium if spa else "0"}, errors
    return {}, []


def build_plan(kind: str, values: dict):
    if kind == PersonalTrainingPlan.kind:
        return PersonalTrainingPlan(values["sessions_per_month"], Decimal(values["fee_per_session"]))
    if kind == PremiumPlan.kind:
        return PremiumPlan(values["spa_access"], Decimal(values["premium_service_fee"]))
    return RegularPlan()


# ---------- Pages ----------

def dashboard_page():
    st.header("📊 Dashboard")

    members = repository().all()
    month = YearMonth.current()
    counts = {label: sum(1 for m in members if m.kind == kind) for label, kind in PLAN_LABELS.items()}
    projected = sum((m.calculate_monthly_fee(month) for m in members), Decimal("0"))
    entries = [m.get_performance(month) for m in members]
    positive = sum(1 for p in entries if p is not None and p.is_positive)

    c1, c2, c3 = st.columns(3)
    c1.metric("Total members", len(members))
    c2.metric(f"Projected fees ({month})", f"{projected:.2f}")
    c3.metric("Positive performances this month", positive)

    st.divider()
    st.subheader("Members by plan")
    st.bar_chart(pd.Series(counts, name="members"))


def members_page():
    st.header("👥 Members")

    with st.sidebar:
        st.subheader("Search")
        search = st.text_input("Name contains")

    members = repository().find_by_name_contains(search) if search.strip() else repository().all()
    st.dataframe(utils.members_frame(members), use_container_width=True, hide_index=True)

    st.divider()
    tab_add, tab_edit, tab_delete = st.tabs(["Add member", "Edit personal details", "Delete"])

    with tab_add:
        c1, c2, c3 = st.columns(3)
        first = c1.text_input("First name")
        last = c1.text_input("Last name")
        age = c2.number_input("Age", min_value=0, step=1, value=18)
        join = c2.date_input("Join date")
        base_fee = c3.text_input("Base fee", value="300")
        label = c3.selectbox("Plan", list(PLAN_LABELS.keys()))
        kind = PLAN_LABELS[label]
        plan_values, plan_errors = plan_inputs(kind, key="add")

        errors = utils.validate_member_inputs(first, last, age, base_fee) + plan_errors
        for e in errors:
            st.error(e)
        if st.button("Add member", type="primary", disabled=bool(errors)):
            member = Member.create(first.strip(), last.strip(), int(age), join, Decimal(base_fee), build_plan(kind, plan_values))
            if not repository().add(member):
                st.error("Could not add member (duplicate ID).")
            elif save_snapshot():
                st.success(f"Added {member.full_name} ({member.member_id}).")

    with tab_edit:
        member = pick_member(key="edit_member")
        if member:
            st.caption("Leave a name blank to keep it.")
            c1, c2 = st.columns(2)
            first = c1.text_input("First name", placeholder=member.first_name, key="edit_first")
            last = c1.text_input("Last name", placeholder=member.last_name, key="edit_last")
            age = c2.number_input("Age", step=1, value=member.age, key="edit_age")
            join = c2.date_input("Join date", value=member.join_date, key="edit_join")
            errors = utils.validate_member_inputs(
                first or member.first_name, last or member.last_name, age, member.base_fee, require_positive_age=True
            )
            for e in errors:
                st.error(e)
            if st.button("Save details", type="primary", disabled=bool(errors)):
                services.edit_personal_details(repository(), member.member_id, first, last, int(age), join)
                if save_snapshot():
                    st.success("Personal details updated.")

    with tab_delete:
        member = pick_member(key="delete_member")
        if member:
            confirm = st.checkbox(f"Confirm delete of {member.full_name}", value=False)
            if st.button("Delete", disabled=not confirm):
                if repository().delete(member.member_id) and save_snapshot():
                    st.success("Member deleted.")
                    st.rerun()


def plans_page():
    st.header("🔁 Plans & Fees")

    member = pick_member(key="plan_member")
    if not member:
        return
    st.write(str(member))

    action = st.radio("Change", ["Base fee only", "Convert plan"], horizontal=True)
    base_fee = st.text_input("Base fee", value=f"{member.base_fee:.2f}")
    fee = utils.parse_money(base_fee)
    errors = [] if fee is not None and fee >= 0 else ["Base fee must be a non-negative number."]

    if action == "Base fee only":
        for e in errors:
            st.error(e)
        if st.button("Update base fee", type="primary", disabled=bool(errors)):
            services.change_base_fee(repository(), member.member_id, fee)
            if save_snapshot():
                st.success("Base fee updated.")
        return

    labels = list(PLAN_LABELS.keys())
    label = st.selectbox("Target plan", labels, index=labels.index(member.plan.label))
    kind = PLAN_LABELS[label]
    plan_values, plan_errors = plan_inputs(kind, key="convert", current=member.plan)
    errors += plan_errors
    for e in errors:
        st.error(e)

    if st.button("Convert", type="primary", disabled=bool(errors)):
        if kind == RegularPlan.kind:
            services.convert_to_regular(repository(), member.member_id, fee)
        elif kind == PersonalTrainingPlan.kind:
            services.convert_to_personal_training(
                repository(), member.member_id, fee, plan_values["sessions_per_month"], plan_values["fee_per_session"]
            )
        else:
            services.convert_to_premium(
                repository(), member.member_id, fee, plan_values["spa_access"], plan_values["premium_service_fee"]
            )
        if save_snapshot():
            st.success(f"Converted to {label} and saved.")


def performance_page():
    st.header("🏋️ Performance")

    member = pick_member(key="perf_member")
    if not member:
        return

    c1, c2, c3 = st.columns(3)
    with c1:
        month = month_input("Month (YYYY-MM)", key="perf_month")
    with c2:
        achieved = st.checkbox("Goal achieved")
        rating = st.slider("Rating", min_value=1, max_value=5, value=3)
    with c3:
        notes = st.text_input("Notes (optional)")

    if month and member.get_performance(month):
        st.warning(f"{month} is already recorded; saving will replace it.")

    if st.button("Save performance", type="primary", disabled=month is None):
        services.record_performance(repository(), member.member_id, month, achieved, rating, notes.strip())
        if save_snapshot():
            st.success("Performance saved.")

    st.divider()
    st.subheader("History")
    latest = member.latest_performance
    st.caption(
        f"Average rating: {member.average_rating:.2f}"
        + (f" | Latest: {latest.month}" if latest else " | No entries yet")
    )
    st.dataframe(utils.performances_frame(member), use_container_width=True, hide_index=True)


def fees_page():
    st.header("🧾 Fees")

    month = month_input("Month (YYYY-MM)", key="fee_month")
    if month is None:
        return

    member = pick_member(key="fee_member")
    if member:
        b = fee_breakdown(member, month)
        st.subheader(f"Monthly fee breakdown for {month}")
        st.write(member.summary())
        if b.performance is None:
            st.caption(f"(No performance record for {month})")
        lines = [("Base fee", f"{b.base:.2f}")]
        if b.extra:
            lines.append((f"{member.plan.label} extra", f"{b.extra:.2f}"))
        lines.append(("Subtotal", f"{b.subtotal:.2f}"))
        if b.discount:
            lines.append(("Performance discount (10%)", f"-{b.discount:.2f}"))
        if b.penalty:
            lines.append(("Low rating penalty", f"+{b.penalty:.2f}"))
        lines.append(("Total", f"{b.total:.2f}"))
        st.table({"item": [k for k, _ in lines], "amount": [v for _, v in lines]})

    st.divider()
    st.subheader("All members")
    st.dataframe(utils.fee_summary_for_month(repository().all(), month), use_container_width=True, hide_index=True)


def viewer_section(viewer: MemberRepository | None):
    if viewer is None:
        return
    if viewer.is_empty():
        st.caption("No members found in file.")
        return

    mode = st.radio("Query", ["List all", "Find by ID", "Search by name"], horizontal=True, key="viewer_mode")
    if mode == "List all":
        st.dataframe(utils.members_frame(viewer.all()), use_container_width=True, hide_index=True)
    elif mode == "Find by ID":
        member = viewer.find_by_id(st.text_input("ID", key="viewer_id").strip())
        if member is None:
            st.caption("Not found.")
            return
        st.write(member.summary())
        month = month_input("Calculate fee for month (YYYY-MM)", key="viewer_month")
        if month:
            st.metric(f"Monthly fee for {month}", f"{member.calculate_monthly_fee(month):.2f}")
    else:
        name = st.text_input("Name contains", key="viewer_name")
        st.dataframe(
            utils.members_frame(viewer.find_by_name_contains(name)), use_container_width=True, hide_index=True
        )


def records_page():
    st.header("📁 Records")

    st.subheader("Load records into the roster")
    members_path = st.text_input("Members CSV", value=str(storage.MEMBERS_FILE))
    use_perf = st.checkbox("Also load performances", value=True)
    perf_path = st.text_input("Performances CSV", value=str(storage.PERFORMANCES_FILE), disabled=not use_perf)
    if st.button("Load", type="primary"):
        try:
            count = services.load_snapshot(repository(), members_path, perf_path if use_perf else None)
            st.success(f"Loaded into roster: {count} members.")
        except storage.StorageError as e:
            st.error(f"Failed to load: {e}")

    st.divider()
    st.subheader("View a file without loading it")
    view_members = st.text_input("Members CSV to view", value=str(storage.MEMBERS_FILE))
    view_perf = st.text_input("Performances CSV to view (optional)", value="")
    if st.button("View"):
        try:
            st.session_state.viewer = services.view_snapshot(view_members, view_perf or None)
        except storage.StorageError as e:
            st.error(f"Failed to load: {e}")
            st.session_state.pop("viewer", None)
    viewer_section(st.session_state.get("viewer"))

    st.divider()
    st.subheader("Archive & export")
    c1, c2 = st.columns(2)
    with c1:
        if st.button("Archive snapshot"):
            try:
                paths = storage.archive_snapshot(repository().all())
                st.success("Saved: " + ", ".join(str(p) for p in paths))
            except storage.StorageError as e:
                st.error(f"Failed to save: {e}")
    with c2:
        if not repository().is_empty():
            st.download_button(
                "Download members.csv",
                data=utils.members_to_csv_bytes(repository().all()),
                file_name="members.csv",
                mime="text/csv",
            )

    st.divider()
    st.subheader("Sample data")
    st.caption("Adds 3 sample members (one per plan) with a few performance entries.")
    if st.button("Insert sample data"):
        added = utils.seed_repository(repository())
        if save_snapshot():
            st.success(f"Inserted {added} sample members.")
            st.rerun()


def main_app():
    st.sidebar.title("🏋️ Gym Member Fees")

    pages = ["Dashboard", "Members", "Plans", "Performance", "Fees", "Records"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Members":
        members_page()
    elif st.session_state.page == "Plans":
        plans_page()
    elif st.session_state.page == "Performance":
        performance_page()
    elif st.session_state.page == "Fees":
        fees_page()
    elif st.session_state.page == "Records":
        records_page()


# --------- App entry ---------

def run():
    init_once()

    if "startup_error" in st.session_state:
        st.warning(f"Saved records could not be loaded: {st.session_state.pop('startup_error')}")

    main_app()


if __name__ == "__main__":
    run()
