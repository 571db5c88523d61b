"""
Paging & Round-Robin Scheduling Simulator

This application provides an interactive simulation of how an operating
system pages processes into physical memory and schedules them:
    - Physical memory as a table of fixed-size frames
    - Per-process page tables and logical -> physical translation
    - All-or-nothing admission with First/Best/Worst-Fit frame placement
    - A tick-driven round-robin loop that runs, suspends and finishes processes

Built with Streamlit for the web interface and Plotly for visualizations.
The simulation itself lives in engine.py / scheduler.py; this file only
reads their snapshots and forwards user actions.

Run with:  streamlit run app.py
"""

# =============================================================================
# IMPORTS
# =============================================================================

import logging

import plotly.graph_objects as go   # Interactive plotting library
import streamlit as st              # Web application framework

import config
from config import SimulationConfig
from engine import SimulatorError
from scheduler import Simulator, SimState
from utils import frame_label, get_color, to_rows

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


# =============================================================================
# HELPERS
# =============================================================================

def report(outcome):
    """Show an Outcome as success or warning."""
    if outcome.ok:
        st.success(outcome.message)
    else:
        st.warning(outcome.message)


def run_action(action, *args):
    """Call a simulator action, turning SimulatorError into an on-screen error."""
    try:
        result = action(*args)
    except SimulatorError as e:
        st.error(str(e))
        return None
    if result is not None and hasattr(result, "ok"):
        report(result)
    return result


def frame_figure(frames) -> go.Figure:
    """Bar chart with one uniform bar per frame, coloured by owning process."""
    fig = go.Figure()
    text = [frame_label(f) for f in frames]
    fig.add_trace(go.Bar(
        x=[f.frame_no for f in frames],
        y=[1] * len(frames),
        text=text,
        marker_color=[get_color(f.pid) for f in frames],
        hovertext=text,
        hoverinfo='text'
    ))
    fig.update_layout(
        height=180,
        showlegend=False,
        yaxis=dict(showticklabels=False),
        xaxis=dict(title="Frame", dtick=1),
        margin=dict(t=10, b=10)
    )
    return fig


# =============================================================================
# PAGE SETUP
# =============================================================================

st.set_page_config(page_title="Paging & Scheduling Simulator", layout="wide")

page = st.sidebar.radio("Choose View", ["Simulator", "Concepts"])

st.title("Paging & Round-Robin Scheduling Simulator")

if page == "Concepts":
    st.header("Operating System Concepts Used in This Project")
    st.markdown(
        """
        ### **1. Paging**
        - A process's logical address space is cut into fixed-size *pages*;
          physical memory is cut into *frames* of the same size.
        - Logical address → (page = addr / page size, offset = addr % page size).
        - Physical address = frame × page size + offset.

        ### **2. Page Table**
        - One entry per page: **present** bit, **frame** number,
          **referenced** bit (set on every access) and **dirty** bit (set on writes).

        ### **3. Admission**
        - A process is admitted only if *every* page gets a frame.
          Otherwise nothing is allocated and it waits in **SUSP_READY**.
        - Nothing is ever evicted to make room.

        ### **4. Placement**
        - **First-Fit**: lowest-numbered free frames.
        - **Best-Fit** / **Worst-Fit**: smallest / largest contiguous run of
          free frames that holds the whole process.

        ### **5. Round-Robin Scheduling**
        - Each tick, the head of the ready queue runs for one unit of time
          and goes back to the tail. When its budget reaches zero it
          terminates and its frames are released.

        ### **6. Process States**
        - NEW → READY → RUNNING → READY … → TERMINATED
        - READY ⇄ SUSP_READY (frames released on suspend)
        """
    )
    st.stop()

# -----------------------------------------------------------------------------
# SIDEBAR - Simulation Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Simulation Settings")

page_size = st.sidebar.number_input(
    "Page size (bytes)", min_value=1, max_value=65536, value=config.PAGE_SIZE, step=100
)
num_frames = st.sidebar.number_input(
    "Frames", min_value=1, max_value=256, value=config.NUM_FRAMES, step=1
)
placement = st.sidebar.selectbox(
    "Placement policy",
    options=list(config.PLACEMENT_POLICIES),
    index=config.PLACEMENT_POLICIES.index(config.DEFAULT_PLACEMENT)
)
tick_ms = st.sidebar.slider(
    "Tick period (ms)", min_value=100, max_value=3000, value=config.TICK_PERIOD_MS, step=100
)
ticks_per_page = st.sidebar.number_input(
    "Ticks per page", min_value=1, max_value=20, value=config.TICKS_PER_PAGE, step=1
)

settings = SimulationConfig(
    page_size=int(page_size),
    num_frames=int(num_frames),
    tick_period_ms=int(tick_ms),
    ticks_per_page=int(ticks_per_page),
    placement=placement,
)

# -----------------------------------------------------------------------------
# SESSION STATE - Simulator Persistence
# -----------------------------------------------------------------------------

if 'simulator' not in st.session_state:
    st.session_state.simulator = Simulator(settings)
    st.session_state.simulator.seed_demo()
else:
    sim = st.session_state.simulator
    old = sim.config
    if (old.page_size, old.num_frames, old.placement) != (settings.page_size, settings.num_frames, settings.placement):
        # Memory layout changed: start over
        st.session_state.simulator = Simulator(settings)
        st.session_state.simulator.seed_demo()
    else:
        sim.update_timing(settings.tick_period_ms, settings.ticks_per_page)

sim: Simulator = st.session_state.simulator

if st.sidebar.button("Reset Simulation"):
    sim.reset()
    st.sidebar.success("Simulation reset")
if st.sidebar.button("Load demo processes"):
    created = sim.seed_demo()
    if created:
        st.sidebar.success(f"Created {created} demo processes")
    else:
        st.sidebar.info("Demo processes are only loaded into an empty simulation")

st.sidebar.markdown("---")

# =============================================================================
# MAIN CONTENT AREA - Two Column Layout
# =============================================================================

col1, col2 = st.columns([1, 2])

# -----------------------------------------------------------------------------
# LEFT COLUMN - Controls
# -----------------------------------------------------------------------------

with col1:
    st.subheader("Simulation")
    c1, c2, c3, c4 = st.columns(4)
    if c1.button("Start"):
        run_action(sim.start)
    if c2.button("Pause"):
        run_action(sim.pause)
    if c3.button("Resume"):
        run_action(sim.resume)
    if c4.button("Stop"):
        run_action(sim.stop)

    st.subheader("Processes")
    new_pid = st.number_input("PID", min_value=0, value=len(sim.processes) + 1, step=1)
    new_size = st.number_input("Size (bytes)", min_value=1, value=sim.config.page_size * 4, step=100)
    if st.button("Create process"):
        run_action(sim.create_process, int(new_pid), int(new_size))

    pids = [p.pid for p in sim.process_list_snapshot()]
    if pids:
        default = pids.index(sim.selected_pid) if sim.selected_pid in pids else 0
        target = st.selectbox("Target process", options=pids, index=default)
        if target != sim.selected_pid:
            run_action(sim.select_process, target)

        a1, a2, a3 = st.columns(3)
        if a1.button("Admit"):
            run_action(sim.admit_process, target)
        if a2.button("Suspend"):
            run_action(sim.suspend_process, target)
        if a3.button("Resume process"):
            run_action(sim.resume_process, target)
        b1, b2 = st.columns(2)
        if b1.button("Terminate"):
            run_action(sim.terminate_process, target)
        if b2.button("Remove"):
            run_action(sim.remove_process, target)

        st.subheader("Address Translation")
        address = st.number_input("Logical address", min_value=0, value=0, step=1)
        write = st.checkbox("Write access")
        if st.button("Translate"):
            translation = run_action(sim.access_address, target, int(address), write)
            if translation is not None:
                st.success(translation.describe())

    if sim.last_error:
        st.caption(f"Last error: {sim.last_error}")

# -----------------------------------------------------------------------------
# RIGHT COLUMN - Live view (re-run every tick while the simulation is running)
# -----------------------------------------------------------------------------

run_every = sim.config.tick_period_s if sim.sim_state is SimState.RUNNING else None


@st.fragment(run_every=run_every)
def live_view():
    sim: Simulator = st.session_state.simulator
    if sim.sim_state is SimState.RUNNING:
        # full-app reruns land here too; only a due tick advances the clock
        sim.tick_if_due()
        if sim.sim_state is SimState.STOPPED:
            # finished: rerun the whole app so the clock switches off
            st.rerun(scope="app")

    st.subheader(f"Physical Frames - {sim.sim_state.value}")
    st.plotly_chart(frame_figure(sim.frame_table_snapshot()), use_container_width=True)

    stats = sim.stats()
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Occupied frames", f"{stats['occupied_frames']}/{stats['total_frames']}")
    m2.metric("Ticks", stats['ticks'])
    m3.metric("Completed", stats['completed'])
    m4.metric("Faults", stats['faults'])

    st.subheader("Ready Queue")
    st.write(sim.ready_queue_snapshot() or "empty")

    st.subheader("Processes")
    st.table(to_rows(sim.process_list_snapshot()))

    if sim.selected_pid is not None:
        st.subheader(f"Page Table - process {sim.selected_pid}")
        st.table(to_rows(sim.page_table_snapshot()))

    st.subheader("Event Log")
    for ev in sim.event_log[-20:][::-1]:
        st.write(ev)


with col2:
    live_view()
