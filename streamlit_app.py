#!/usr/bin/env python3
"""
Streamlit Fitness Tracking Application
Calorie, workout and weight logging with trend dashboards.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Tuple

import pandas as pd
import streamlit as st

from auth import AuthService, User, logout, require_auth
from calendar_grid import aggregate_month, shift_month, weeks
from charts import balance_bar_figure, net_trend_figure, steps_figure, weight_figure
from config import Settings, build_backend, configure_logging, load_settings
from csv_import import CsvImportError, export_calorie_csv, import_calorie_csv
from entries import CalorieDraft, InvalidEntryError, WeightDraft, WorkoutDraft, WorkoutType, parse_iso_day
from entry_store import EntryStore, PersistenceError
from metrics import balance, balance_label, net, recent_workout_count, trailing_average_net, weight_delta, weight_stats
from projections import (
    calorie_table_entries,
    monthly_balance_series,
    monthly_balance_total,
    monthly_steps_series,
    monthly_weight_series,
    trailing_net_series,
    weight_history_series,
)
from storage import Storage

logger = logging.getLogger(__name__)

WORKOUT_COLORS = {
    WorkoutType.PUSH: "🟥",
    WorkoutType.PULL: "🟦",
    WorkoutType.LEGS: "🟩",
    WorkoutType.REST: "⬜",
    WorkoutType.UNSET: "",
}


@st.cache_resource(show_spinner=False)
def get_services() -> Tuple[Settings, AuthService, object]:
    """Build storage, auth and the entry backend once per process."""
    settings = load_settings()
    configure_logging(settings.log_level)
    storage = Storage(settings.data_dir, settings.database_url)
    storage.init_database()
    auth = AuthService(storage, session_hours=settings.session_hours)
    auth.init_tables()
    auth.cleanup_expired_sessions()
    return settings, auth, build_backend(settings, storage)


def get_entry_store(backend: object, user: User) -> EntryStore:
    """One store per signed-in user, kept across reruns."""
    store = st.session_state.get("entry_store")
    if store is None or store.user_id != user.uid:
        store = EntryStore(backend, user_id=user.uid)
        store.load()
        st.session_state.entry_store = store
    return store


def run_mutation(action, success: Optional[str] = None) -> bool:
    """Run a store mutation, reporting failures instead of raising."""
    try:
        action()
    except PersistenceError as e:
        st.error(f"Could not save your change: {e}")
        return False
    except InvalidEntryError as e:
        st.error(str(e))
        return False
    if success:
        st.success(success)
    return True


def month_picker(key: str) -> Tuple[int, int]:
    """Previous/next month navigation; returns the selected (year, month)."""
    today = date.today()
    state_key = f"{key}_month"
    if state_key not in st.session_state:
        st.session_state[state_key] = (today.year, today.month)
    year, month = st.session_state[state_key]
    col1, col2, col3 = st.columns([1, 3, 1])
    with col1:
        if st.button("◀", key=f"{key}_prev"):
            year, month = shift_month(year, month, -1)
    with col3:
        if st.button("▶", key=f"{key}_next", disabled=(year, month) >= (today.year, today.month)):
            year, month = shift_month(year, month, 1)
    st.session_state[state_key] = (year, month)
    with col2:
        st.markdown(f"<div style='text-align:center'><b>{date(year, month, 1):%B %Y}</b></div>", unsafe_allow_html=True)
    return year, month


# Page configuration
st.set_page_config(
    page_title="Fitness Tracker",
    page_icon="💪",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        margin-bottom: 2rem;
    }
    .day-cell {
        border-radius: 0.5rem;
        padding: 0.4rem;
        min-height: 4rem;
        background-color: #1f1f1f;
    }
    .day-active { border: 2px solid #22c55e; }
    @media (max-width: 768px) {
        .main-header {
            font-size: 2rem;
            margin-bottom: 1rem;
        }
    }
</style>
""", unsafe_allow_html=True)

if "clear_confirm_step" not in st.session_state:
    st.session_state.clear_confirm_step = 0  # 0: none, 1: first confirm, 2: second confirm


def main():
    settings, auth, backend = get_services()

    user = require_auth(auth)
    if user is None:
        return
    store = get_entry_store(backend, user)

    st.markdown('<h1 class="main-header">💪 Fitness Tracker</h1>', unsafe_allow_html=True)

    with st.sidebar:
        st.header("👤 User Profile")
        st.success(f"Signed in as: **{user.email}**")
        if st.button("🚪 Sign Out", type="secondary"):
            st.session_state.pop("entry_store", None)
            logout(auth)
            return

        st.header("📊 Navigation")
        page = st.selectbox(
            "Choose a page:",
            ["🏠 Dashboard", "🔥 Calorie Tracker", "🏋️ Workout Log", "⚖️ Weight Tracker"]
        )

    if page == "🏠 Dashboard":
        show_dashboard(store, settings)
    elif page == "🔥 Calorie Tracker":
        show_calorie_tracker(store)
    elif page == "🏋️ Workout Log":
        show_workout_log(store)
    elif page == "⚖️ Weight Tracker":
        show_weight_tracker(store)


def show_dashboard(store: EntryStore, settings: Settings):
    """Stat cards, trend charts and the monthly consistency grid"""
    st.header("📊 Dashboard")
    today = date.today()

    col1, col2, col3 = st.columns(3)
    with col1:
        avg_net = trailing_average_net(store.calories, settings.average_window)
        st.metric("Avg Net Calories", f"{avg_net:.0f}")
        st.caption(f"Last {settings.average_window} entries")
    with col2:
        delta = weight_delta(store.weights)
        st.metric("Weight Change", f"{delta:+.1f} lbs", delta=f"{delta:+.1f}", delta_color="inverse")
        st.caption("Since previous reading")
    with col3:
        st.metric("Workouts This Week", recent_workout_count(store.workouts, today))
        st.caption("Push / Pull / Legs sessions")

    st.subheader(f"Net Calories, Last {settings.trend_window_days} Days")
    points = trailing_net_series(store.calories, today, settings.trend_window_days)
    st.plotly_chart(net_trend_figure(points), width="stretch")

    left, right = st.columns(2)
    with left:
        st.subheader("Calorie Deficit / Surplus")
        year, month = month_picker("balance")
        balance_points = monthly_balance_series(store.calories, year, month)
        st.plotly_chart(balance_bar_figure(balance_points), width="stretch")
        total = monthly_balance_total(balance_points)
        st.markdown(f"**Monthly total:** {balance_label(total)} of {abs(total):g} kcal")
    with right:
        st.subheader("Weight Progress")
        year, month = month_picker("weight")
        weight_points = monthly_weight_series(store.weights, year, month)
        if weight_points:
            st.plotly_chart(weight_figure(weight_points), width="stretch")
        else:
            st.info("No weight data available for this month")

    show_consistency_grid(store)


def show_consistency_grid(store: EntryStore):
    st.subheader("🗓️ Workout Consistency")
    year, month = month_picker("consistency")
    summary = aggregate_month(year, month, store.calories, store.workouts)
    st.metric("Consistency Score", f"{summary.consistency_score}%")
    st.caption(f"{summary.active_days} active days out of {len(summary.days)}")

    header = st.columns(7)
    for col, name in zip(header, ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]):
        col.markdown(f"**{name}**")
    for row in weeks(summary):
        cols = st.columns(7)
        for col, day in zip(cols, row):
            if day is None:
                continue
            lines = [f"**{day.label}**"]
            if day.workout is not None and day.workout.type != WorkoutType.UNSET:
                lines.append(f"{WORKOUT_COLORS[day.workout.type]} {day.workout.type.value}")
            if day.steps:
                lines.append(f"👣 {day.steps:,.0f}")
            if day.has_calorie_data:
                dot = "🟢" if day.balance >= 0 else "🔴"
                lines.append(f"{dot} {day.balance:+g}")
            css = "day-cell day-active" if day.is_active else "day-cell"
            col.markdown(f"<div class='{css}'>{'<br>'.join(lines)}</div>", unsafe_allow_html=True)


def show_calorie_tracker(store: EntryStore):
    st.header("🔥 Calorie Tracker")
    st.write("Track your daily calorie intake and expenditure.")

    with st.expander("➕ Add Entry"):
        with st.form("add_calorie", clear_on_submit=True):
            cols = st.columns(5)
            draft = CalorieDraft(
                day=cols[0].date_input("Date", value=date.today()),
                target=cols[1].text_input("Target (kcal)", placeholder="2000"),
                exercise=cols[2].text_input("Exercise (kcal)", placeholder="300"),
                intake=cols[3].text_input("Intake (kcal)", placeholder="1800"),
                steps=cols[4].text_input("Steps", placeholder="10000"),
            )
            if st.form_submit_button("Add Entry", type="primary"):
                try:
                    fields = draft.to_fields()
                except InvalidEntryError as e:
                    st.error(str(e))
                    fields = None
                if fields is not None and run_mutation(lambda: store.add_calorie(**fields)):
                    st.rerun()

    show_csv_tools(store)
    show_calorie_table(store)
    show_clear_data(store)


def show_csv_tools(store: EntryStore):
    col1, col2 = st.columns(2)
    with col1:
        uploaded = st.file_uploader(
            "Import CSV",
            type=["csv"],
            help="Columns: day,target,exercise,intake,steps, or a spreadsheet export with No. and Plus/Minus columns",
        )
        start_year = st.number_input("First year (for dates without a year)", value=date.today().year, step=1)
        if uploaded is not None and st.button("Import", type="primary"):
            try:
                result = import_calorie_csv(store, uploaded.getvalue(), start_year=int(start_year))
            except CsvImportError:
                logger.exception("CSV import failed")
                st.error("Error parsing CSV file. Please check the format.")
            except PersistenceError as e:
                st.error(f"Could not save imported entries: {e}")
            else:
                st.success(f"Imported {len(result.imported_ids)} entries, skipped {result.skipped} lines")
    with col2:
        st.download_button(
            "📥 Export CSV",
            data=export_calorie_csv(store.calories),
            file_name="calories.csv",
            mime="text/csv",
        )


def show_calorie_table(store: EntryStore):
    rows = calorie_table_entries(store.calories)
    if not rows:
        st.info("No calorie entries yet.")
        return

    df = pd.DataFrame([
        {
            "Date": e.day,
            "Target": e.target,
            "Exercise": e.exercise,
            "Intake": e.intake,
            "Steps": e.steps,
            "Net": net(e),
            "Balance": balance(e),
        }
        for e in rows
    ])
    st.dataframe(df, width="stretch", hide_index=True)

    labels = {e.id: f"{e.day} (intake {e.intake if e.intake is not None else '-'})" for e in rows}
    selected = st.selectbox("Edit or delete an entry", list(labels), format_func=labels.get)
    entry = store.find_calorie(selected)
    if entry is None:
        return
    with st.form(f"edit_{entry.id}"):
        current = CalorieDraft.from_entry(entry)
        cols = st.columns(4)
        draft = CalorieDraft(
            day=entry.day,
            target=cols[0].text_input("Target", value=current.target),
            exercise=cols[1].text_input("Exercise", value=current.exercise),
            intake=cols[2].text_input("Intake", value=current.intake),
            steps=cols[3].text_input("Steps", value=current.steps),
        )
        save_col, delete_col = st.columns(2)
        save = save_col.form_submit_button("✔ Save")
        delete = delete_col.form_submit_button("🗑 Delete")
    if save:
        try:
            fields = draft.to_fields()
        except InvalidEntryError as e:
            st.error(str(e))
            return
        if fields is not None and run_mutation(lambda: store.update_calorie(entry.id, **fields)):
            st.rerun()
    if delete and run_mutation(lambda: store.delete_calorie(entry.id)):
        st.rerun()


def show_clear_data(store: EntryStore):
    st.divider()
    step = st.session_state.clear_confirm_step
    if step == 0:
        if st.button("🗑 Clear Data"):
            st.session_state.clear_confirm_step = 1
            st.rerun()
        return

    if step == 1:
        st.warning("**Clear All Data?** This will delete all your calorie, workout, and weight data. "
                   "This cannot be undone.")
        confirm_label = "Yes, I understand"
    else:
        st.error("**Are you absolutely sure?** All your progress data will be permanently erased.")
        confirm_label = "Permanently Delete Everything"

    col1, col2 = st.columns(2)
    if col1.button("Cancel"):
        st.session_state.clear_confirm_step = 0
        st.rerun()
    if col2.button(confirm_label, type="primary"):
        if step == 1:
            st.session_state.clear_confirm_step = 2
        else:
            st.session_state.clear_confirm_step = 0
            run_mutation(store.clear_all, "All data cleared.")
        st.rerun()


def show_workout_log(store: EntryStore):
    st.header("🏋️ Workout Log")
    st.write("Track your training split and progress.")
    st.caption("🟥 Push  🟦 Pull  🟩 Legs  ⬜ Rest")

    year, month = month_picker("workouts")
    summary = aggregate_month(year, month, store.calories, store.workouts)

    left, right = st.columns([2, 1])
    with left:
        header = st.columns(7)
        for col, name in zip(header, ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]):
            col.markdown(f"**{name}**")
        for row in weeks(summary):
            cols = st.columns(7)
            for col, day in zip(cols, row):
                if day is None:
                    continue
                marker = WORKOUT_COLORS[day.workout.type] if day.workout else ""
                if col.button(f"{day.label} {marker}", key=f"wday_{day.iso}"):
                    st.session_state.selected_workout_day = day.iso

    with right:
        selected = st.session_state.get("selected_workout_day")
        if not selected:
            st.info("Select a date")
        else:
            existing = store.workouts.get(selected)
            st.subheader(date.fromisoformat(selected).strftime("%b %d, %Y"))
            types = [t.value for t in WorkoutType]
            with st.form(f"workout_{selected}"):
                draft = WorkoutDraft(
                    type=st.selectbox(
                        "Workout Type",
                        types,
                        index=types.index(existing.type.value) if existing else types.index(""),
                        format_func=lambda v: v or "Select type",
                    ),
                    notes=st.text_area("Notes", value=existing.notes if existing else ""),
                )
                save_col, delete_col = st.columns(2)
                save = save_col.form_submit_button("Save", type="primary")
                delete = delete_col.form_submit_button("Delete", disabled=existing is None)
            if save and run_mutation(lambda: store.add_workout(selected, **draft.to_fields())):
                st.session_state.selected_workout_day = None
                st.rerun()
            if delete and run_mutation(lambda: store.delete_workout(selected)):
                st.session_state.selected_workout_day = None
                st.rerun()

    st.subheader("👣 Monthly Steps")
    steps_points = monthly_steps_series(store.calories, year, month)
    if steps_points:
        st.plotly_chart(steps_figure(steps_points), width="stretch")
    else:
        st.info("No steps recorded for this month")


def show_weight_tracker(store: EntryStore):
    st.header("⚖️ Weight Tracker")
    st.write("Monitor your weight progress over time.")

    stats = weight_stats(store.weights)
    col1, col2, col3 = st.columns(3)
    col1.metric("Current Weight", f"{stats.latest:.1f} lbs")
    col2.metric("Total Change", f"{stats.total_change:+.1f} lbs")
    col3.metric("Average Weight", f"{stats.average:.1f} lbs")

    with st.form("add_weight", clear_on_submit=True):
        cols = st.columns(2)
        draft = WeightDraft(
            date=cols[0].date_input("Date", value=date.today()),
            weight=cols[1].text_input("Weight (lbs)", placeholder="180.0"),
        )
        if st.form_submit_button("Add Entry", type="primary"):
            try:
                fields = draft.to_fields()
            except InvalidEntryError as e:
                st.error(str(e))
                fields = None
            if fields is not None and run_mutation(lambda: store.add_weight(**fields)):
                st.rerun()

    entries = sorted(store.weights, key=lambda w: w.date, reverse=True)
    if not entries:
        st.info("No weight entries yet.")
        return

    all_points = weight_history_series(store.weights)
    if all_points:
        st.plotly_chart(weight_figure(all_points, title="Weight History"), width="stretch")

    labels = {w.id: f"{w.date}: {w.weight:.1f} lbs" for w in entries}
    selected = st.selectbox("Edit or delete an entry", list(labels), format_func=labels.get)
    entry = next(w for w in entries if w.id == selected)
    with st.form(f"edit_weight_{entry.id}"):
        cols = st.columns(2)
        draft = WeightDraft(
            date=cols[0].date_input("Date", value=parse_iso_day(entry.date) or date.today()),
            weight=cols[1].text_input("Weight (lbs)", value=str(entry.weight)),
        )
        save_col, delete_col = st.columns(2)
        save = save_col.form_submit_button("✔ Save")
        delete = delete_col.form_submit_button("🗑 Delete")
    if save:
        try:
            fields = draft.to_fields()
        except InvalidEntryError as e:
            st.error(str(e))
            return
        if fields is not None and run_mutation(lambda: store.update_weight(entry.id, **fields)):
            st.rerun()
    if delete and run_mutation(lambda: store.delete_weight(entry.id)):
        st.rerun()


if __name__ == "__main__":
    main()
