import json
import logging
import streamlit as st
import pandas as pd
from datetime import date, timedelta
from services.group_service import list_groups, list_members
from services.sleep_service import SOURCES, CONFIDENCE_LEVELS, submit_sleep, get_entry
from services.config_service import set_rules, get_active_config, list_configs
from services.rules import MODES, THRESHOLD, default_threshold_payload
from services.scoring_service import calculate_daily_scores, NO_CONFIG
from services.day_service import recalculate_recent
from services.event_service import add_manual_adjustment, load_events_frame

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# --- CONFIG ---
st.set_page_config(page_title="SLEEP LEAGUE", page_icon="🌙", layout="wide")

# --- CUSTOM CSS ---
st.markdown("""
<style>
    .stApp {background-color: #0e1117;}
    div.stButton > button {
        width: 100%;
        background-color: #1c1c1c;
        border: 1px solid #333;
        color: #eee;
    }
    div.stButton > button:hover {
        border-color: #7B68EE;
        color: #7B68EE;
    }
</style>
""", unsafe_allow_html=True)

# --- HELPER: Outcome Banner ---
def show_outcome(result):
    if result.status == NO_CONFIG:
        st.warning("Scoring is not configured for this day yet. Nothing was written.")
    elif not result.events:
        st.info("Day computed: no activity, no events written.")
    else:
        st.success(f"Day computed: {len(result.events)} events written.")

# --- INITIALIZATION ---
if 'today' not in st.session_state:
    st.session_state.today = date.today()

try:
    groups = list_groups()
except Exception as e:
    st.error(f"System Failure: {e}")
    st.stop()

if not groups:
    st.error("No groups found. Run config_boot.py first.")
    st.stop()

# --- SIDEBAR ---
with st.sidebar:
    st.header("⚙️ SYSTEM MENU")
    group_labels = {f"{g['name']} ({g['join_code']})": g['id'] for g in groups}
    group_id = group_labels[st.selectbox("Group", list(group_labels.keys()))]
    st.write(f"**Date:** {st.session_state.today}")

    col_nav1, col_nav2 = st.columns(2)
    if col_nav1.button("⬅️ Prev"):
        st.session_state.today -= timedelta(days=1)
        st.rerun()
    if col_nav2.button("Next ➡️"):
        st.session_state.today += timedelta(days=1)
        st.rerun()

    if st.button("Jump to Today"):
        st.session_state.today = date.today()
        st.rerun()

    st.divider()
    mode = st.radio("View Mode", ["SUBMIT", "RULES", "RECALCULATE"])

members = list_members(group_id)

# --- MODE: SUBMIT ---
if mode == "SUBMIT":
    st.title(f"🛌 SLEEP LOG: {st.session_state.today}")

    user_id = st.selectbox("Member", members)
    existing = get_entry(group_id, user_id, st.session_state.today)
    if existing:
        st.info(f"Existing entry: {existing.sleep_minutes} mins ({existing.source}). Submitting replaces it.")

    with st.form("sleep_log"):
        c1, c2 = st.columns(2)
        hours = c1.number_input("Hours", min_value=0, max_value=24, value=7)
        minutes = c2.number_input("Minutes", min_value=0, max_value=59, value=0)

        c3, c4 = st.columns(2)
        source = c3.selectbox("Source", SOURCES)
        confidence = c4.selectbox("Confidence", CONFIDENCE_LEVELS)
        note = st.text_area("Note")

        if st.form_submit_button("🔒 SUBMIT"):
            try:
                # 1. Upsert the entry
                submit_sleep(group_id, user_id, st.session_state.today, int(hours * 60 + minutes), source, confidence, note or None)

                # 2. Rescore the day immediately
                show_outcome(calculate_daily_scores(group_id, st.session_state.today))
            except ValueError as e:
                st.error(f"Submission Failed: {e}")

# --- MODE: RULES ---
elif mode == "RULES":
    st.title("📜 SCORING RULES")

    active = get_active_config(group_id, st.session_state.today)
    if active:
        st.caption(f"In force on {st.session_state.today}: config {active.id} ({active.mode}) since {active.active_from_date}")
    else:
        st.warning("No rules in force on this day.")

    with st.form("rules"):
        new_mode = st.selectbox("Mode", MODES)
        active_from = st.date_input("Active from", value=st.session_state.today)
        payload = st.text_area("Rules JSON", value=json.dumps(default_threshold_payload(), indent=2), height=300)
        note = st.text_input("Change note")

        if st.form_submit_button("Save Rules"):
            try:
                config = set_rules(group_id, new_mode, payload if new_mode == THRESHOLD else "{}", active_from, note or None)
                st.success(f"Config {config.id} stored, active from {config.active_from_date}.")
            except ValueError as e:
                st.error(str(e))

    st.subheader("History")
    history = list_configs(group_id)
    if history:
        st.dataframe(pd.DataFrame([
            {"id": cfg.id, "mode": cfg.mode, "active_from": cfg.active_from_date, "note": cfg.note} for cfg in history
        ]), hide_index=True)

# --- MODE: RECALCULATE ---
elif mode == "RECALCULATE":
    st.title(f"♻️ RECALCULATION: {st.session_state.today}")

    c1, c2 = st.columns(2)
    if c1.button("Recalculate This Day"):
        show_outcome(calculate_daily_scores(group_id, st.session_state.today))
    if c2.button("Recalculate Today + Yesterday"):
        for day, status in recalculate_recent(group_id).items():
            st.write(f"{day}: {status}")

    with st.expander("✍️ Manual Adjustment"):
        adj_user = st.selectbox("Member", members, key="adj_user")
        adj_points = st.number_input("Points", value=0, step=1)
        adj_note = st.text_input("Reason")
        if st.button("Add Adjustment"):
            add_manual_adjustment(group_id, adj_user, st.session_state.today, int(adj_points), adj_note or None)
            st.success("Adjustment stored. Recalculation will keep it.")

    st.subheader("📝 STORED EVENTS")
    df = load_events_frame(group_id, st.session_state.today, st.session_state.today)
    if df.empty:
        st.info("No events stored for this day.")
    else:
        st.dataframe(df[['user_id', 'points', 'reason', 'metadata']], hide_index=True)
