# scheduler.py
"""
Round-robin simulation loop on top of the paging engine.

The Simulator owns the live process set, the ready queue, every
process's remaining execution budget and the memory manager. Callers
drive it through manual events (create, admit, suspend, resume,
terminate, access, select), simulation controls (start, pause, resume,
stop) and tick(), and read it back through immutable snapshots.

Each public operation holds one re-entrant lock for its whole duration,
so a tick and a manual event never interleave even when the host calls
them from different threads.
"""

import functools
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Deque, Dict, List, Optional, Sequence

from config import DEMO_PROCESS_PAGES, EVENT_LOG_LIMIT, TICK_DUE_FRACTION, SimulationConfig
from engine import (
    PCB,
    AlreadyAdmitted,
    DuplicatePid,
    InvalidArgument,
    PhysicalMemory,
    ProcessState,
    ProcessTerminated,
    SimulatorError,
    TranslationFault,
    UnknownPid,
    make_memory_manager,
)

logger = logging.getLogger(__name__)


class SimState(Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


# -----------------------------
# Results and snapshots
# -----------------------------

@dataclass(frozen=True)
class Outcome:
    """Result of an operation: whether it took effect, and what to tell the user."""
    ok: bool
    message: str


@dataclass(frozen=True)
class Translation:
    pid: int
    logical_address: int
    page: int
    offset: int
    frame: int
    physical_address: int

    def describe(self) -> str:
        return (f"Process: {self.pid}\n"
                f"Page: {self.page}\n"
                f"Logical address: {self.logical_address}\n"
                f"Offset: {self.offset}\n"
                f"Physical address: {self.physical_address}")


@dataclass(frozen=True)
class FrameView:
    frame_no: int
    occupied: bool
    pid: Optional[int]
    page_no: Optional[int]


@dataclass(frozen=True)
class ProcessView:
    pid: int
    state: str
    size_bytes: int
    page_count: int
    remaining_ticks: int


@dataclass(frozen=True)
class PageEntryView:
    page_no: int
    present: bool
    frame_no: Optional[int]
    referenced: bool
    dirty: bool


def atomic(method):
    """Run a Simulator method under its lock and record any SimulatorError it raises."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            try:
                return method(self, *args, **kwargs)
            except SimulatorError as exc:
                self._record_error(exc)
                raise

    return wrapper


class Simulator:
    """
    Paging + round-robin scheduling simulator.

    Attributes:
        config (SimulationConfig): Page size, frame count, tick period, budget
        memory (PhysicalMemory): The frame table
        manager (MemoryManager): Placement policy in use
        processes (Dict[int, PCB]): Live processes in creation order
        ready_queue (Deque[int]): Pids waiting for their next tick
        remaining (Dict[int, int]): Remaining execution ticks per pid
        sim_state (SimState): STOPPED, RUNNING or PAUSED
        running_pid (Optional[int]): Pid holding the CPU inside a tick
        selected_pid (Optional[int]): Pid whose page table is on display
        event_log (List[str]): Most recent events, oldest first
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = (config or SimulationConfig()).validate()
        self._lock = threading.RLock()
        self.reset()

    # =========================================================================
    # HOUSEKEEPING
    # =========================================================================

    @atomic
    def reset(self):
        """Drop every process and return to an empty, STOPPED simulation."""
        self.memory = PhysicalMemory(self.config.page_size, self.config.num_frames)
        self.manager = make_memory_manager(self.config.placement, self.memory)
        self.processes: Dict[int, PCB] = {}
        self.ready_queue: Deque[int] = deque()
        self.remaining: Dict[int, int] = {}
        self.sim_state = SimState.STOPPED
        self.running_pid: Optional[int] = None
        self.selected_pid: Optional[int] = None
        self.last_tick_at: Optional[float] = None

        self.ticks = 0
        self.completed = 0
        self.translations = 0
        self.faults = 0

        self.event_log: List[str] = []
        self.last_message = ""
        self.last_error: Optional[str] = None

    def _log(self, message: str, level: int = logging.INFO):
        self.event_log.append(message)
        if len(self.event_log) > EVENT_LOG_LIMIT:
            del self.event_log[:-EVENT_LOG_LIMIT]
        logger.log(level, message)

    def _done(self, ok: bool, message: str) -> Outcome:
        self.last_message = message
        self.last_error = None
        self._log(message, logging.INFO if ok else logging.WARNING)
        return Outcome(ok, message)

    def _record_error(self, exc: SimulatorError):
        self.last_message = str(exc)
        self.last_error = str(exc)
        self._log(f"Error: {exc}", logging.WARNING)

    def _require(self, pid: int) -> PCB:
        pcb = self.processes.get(pid)
        if pcb is None:
            raise UnknownPid(pid)
        return pcb

    def _budget(self, pcb: PCB) -> int:
        return max(1, pcb.page_count * self.config.ticks_per_page)

    def _dequeue(self, pid: int):
        if pid in self.ready_queue:
            self.ready_queue.remove(pid)

    def _enqueue(self, pid: int):
        if pid not in self.ready_queue:
            self.ready_queue.append(pid)

    # =========================================================================
    # ADMISSION
    # =========================================================================

    def _greedy_admit(self) -> bool:
        """Admit every NEW / SUSP_READY process that fits, in creation order."""
        admitted = False
        for pcb in self.processes.values():
            if pcb.state not in (ProcessState.NEW, ProcessState.SUSP_READY):
                continue
            if self.manager.admit(pcb):
                pcb.state = ProcessState.READY
                self._enqueue(pcb.pid)
                admitted = True
                self._log(f"Admitted: process {pcb.pid} -> frames {pcb.frames()}")
        return admitted

    def _demote_running(self):
        """Put an interrupted RUNNING process back at the head of the queue."""
        if self.running_pid is None:
            return
        pid = self.running_pid
        self.running_pid = None
        pcb = self.processes.get(pid)
        if pcb is None:
            return
        if pcb.state is ProcessState.RUNNING:
            pcb.state = ProcessState.READY
        self._dequeue(pid)
        self.ready_queue.appendleft(pid)

    # =========================================================================
    # SIMULATION CONTROL
    # =========================================================================

    @atomic
    def start(self) -> Outcome:
        """
        STOPPED -> RUNNING.

        Keeps the surviving ready-queue order, appends READY processes
        missing from it in creation order, then admits every NEW / SUSP_READY process that fits. Stays STOPPED
        when nothing ends up ready. Acts as resume() while PAUSED.
        """
        if self.sim_state is SimState.RUNNING:
            return self._done(False, "Simulation is already running.")
        if self.sim_state is SimState.PAUSED:
            return self._resume()

        kept = [pid for pid in self.ready_queue
                if pid in self.processes and self.processes[pid].state is ProcessState.READY]
        self.ready_queue.clear()
        self.ready_queue.extend(kept)
        for pcb in self.processes.values():
            if pcb.state is ProcessState.READY:
                self._enqueue(pcb.pid)
        self._greedy_admit()

        if not self.ready_queue:
            return self._done(False, "Nothing to run: create or admit a process first.")

        self.sim_state = SimState.RUNNING
        self.last_tick_at = time.monotonic()
        return self._done(True, "Simulation started.")

    @atomic
    def pause(self) -> Outcome:
        if self.sim_state is not SimState.RUNNING:
            return self._done(False, "Simulation cannot be paused now.")
        self.sim_state = SimState.PAUSED
        self._demote_running()
        return self._done(True, "Simulation paused.")

    @atomic
    def resume(self) -> Outcome:
        return self._resume()

    def _resume(self) -> Outcome:
        if self.sim_state is not SimState.PAUSED:
            return self._done(False, "Simulation is not paused.")
        if not self.ready_queue:
            self._greedy_admit()
        self.sim_state = SimState.RUNNING
        self.last_tick_at = time.monotonic()
        return self._done(True, "Simulation resumed.")

    @atomic
    def stop(self) -> Outcome:
        """Stop ticking; the ready queue is kept as-is for inspection."""
        if self.sim_state is SimState.STOPPED:
            return self._done(False, "Simulation is already stopped.")
        self.sim_state = SimState.STOPPED
        self._demote_running()
        return self._done(True, "Simulation stopped.")

    @atomic
    def tick(self) -> Optional[int]:
        """
        Run one tick of round-robin scheduling.

        Pops the head of the ready queue and charges it one tick of its
        budget. A process that runs out of budget is terminated and its
        frames are handed to whatever fits next; any other process goes
        back to the tail of the queue.

        Returns:
            Optional[int]: The pid that ran, or None if nothing ran
        """
        if self.sim_state is not SimState.RUNNING:
            return None

        if not self.ready_queue and not self._greedy_admit():
            self.sim_state = SimState.STOPPED
            self._done(True, "Simulation finished: no processes left to run.")
            return None

        pid = self.ready_queue.popleft()
        pcb = self.processes.get(pid)
        if pcb is None:
            return None

        self.ticks += 1
        self.running_pid = pid
        pcb.state = ProcessState.RUNNING

        left = self.remaining.get(pid, self._budget(pcb)) - 1
        self.remaining[pid] = max(0, left)
        self._log(f"Tick {self.ticks}: process {pid} ran ({self.remaining[pid]} left)", logging.DEBUG)

        if left <= 0:
            self.manager.release(pcb)
            pcb.state = ProcessState.TERMINATED
            self.running_pid = None
            self.completed += 1
            self._log(f"Finished: process {pid}, frames released")
            self._greedy_admit()
            return pid

        pcb.state = ProcessState.READY
        self.running_pid = None
        self.ready_queue.append(pid)
        return pid

    @atomic
    def tick_if_due(self, now: Optional[float] = None) -> Optional[int]:
        """
        Tick only if a full tick period has passed since the last one.

        Hosts that may call in more often than the clock period (a UI that
        redraws on every interaction) use this instead of tick().

        Args:
            now (Optional[float]): time.monotonic() reading, taken if omitted

        Returns:
            Optional[int]: The pid that ran, or None if nothing ran
        """
        if self.sim_state is not SimState.RUNNING:
            return None
        if now is None:
            now = time.monotonic()
        if (self.last_tick_at is not None
                and now - self.last_tick_at < self.config.tick_period_s * TICK_DUE_FRACTION):
            return None
        self.last_tick_at = now
        return self.tick()

    @atomic
    def update_timing(self, tick_period_ms: int, ticks_per_page: int) -> Outcome:
        """
        Change the tick period and per-page budget of a live simulation.

        Budgets already given to existing processes are left alone.

        Raises:
            InvalidArgument: If either value is not a positive integer
        """
        new = replace(self.config, tick_period_ms=tick_period_ms,
                      ticks_per_page=ticks_per_page).validate()
        if new == self.config:
            return Outcome(True, "Timing unchanged.")
        self.config = new
        return self._done(True, f"Timing updated: {tick_period_ms} ms per tick, "
                                f"{ticks_per_page} ticks per page.")

    # =========================================================================
    # MANUAL EVENTS
    # =========================================================================

    @atomic
    def create_process(self, pid: int, size_bytes: int) -> Outcome:
        if pid < 0 or size_bytes <= 0:
            raise InvalidArgument("PID must be non-negative and size must be positive.")
        if pid in self.processes:
            raise DuplicatePid(f"PID {pid} already exists.")

        pcb = PCB(pid, size_bytes, self.config.page_size)
        self.processes[pid] = pcb
        self.remaining[pid] = self._budget(pcb)
        if self.selected_pid is None:
            self.selected_pid = pid
        return self._done(True, f"Process {pid} created: {size_bytes} B ({pcb.page_count} pages).")

    @atomic
    def admit_process(self, pid: int) -> Outcome:
        """
        Try to load a NEW, SUSP_READY or WAITING process into memory.

        Not enough frames is a normal outcome: the process goes to
        SUSP_READY and the result has ok=False.

        Raises:
            UnknownPid: If pid is not live
            AlreadyAdmitted: If the process is READY or RUNNING
            ProcessTerminated: If the process is TERMINATED
        """
        pcb = self._require(pid)
        if pcb.state in (ProcessState.READY, ProcessState.RUNNING):
            raise AlreadyAdmitted(f"Process {pid} is already admitted in memory.")
        if pcb.state is ProcessState.TERMINATED:
            raise ProcessTerminated(f"Process {pid} is terminated.")

        if self.manager.admit(pcb):
            pcb.state = ProcessState.READY
            self._enqueue(pid)
            return self._done(True, f"Process {pid} admitted to memory: frames {pcb.frames()}.")

        pcb.state = ProcessState.SUSP_READY
        return self._done(False, f"Not enough free frames. Process {pid} moved to SUSP_READY.")

    def resume_process(self, pid: int) -> Outcome:
        return self.admit_process(pid)

    @atomic
    def suspend_process(self, pid: int) -> Outcome:
        pcb = self._require(pid)
        if pcb.state is ProcessState.TERMINATED:
            raise ProcessTerminated(f"Process {pid} is terminated.")
        self.manager.release(pcb)
        pcb.state = ProcessState.SUSP_READY
        self._dequeue(pid)
        if self.running_pid == pid:
            self.running_pid = None
        return self._done(True, f"Process {pid} suspended. Frames released.")

    @atomic
    def terminate_process(self, pid: int) -> Outcome:
        pcb = self._require(pid)
        self.manager.release(pcb)
        pcb.state = ProcessState.TERMINATED
        self.remaining[pid] = 0
        self._dequeue(pid)
        if self.running_pid == pid:
            self.running_pid = None
        return self._done(True, f"Process {pid} terminated. Frames released.")

    @atomic
    def remove_process(self, pid: int) -> Outcome:
        """Tear a process down completely: release it and forget its pid."""
        pcb = self._require(pid)
        self.manager.release(pcb)
        self._dequeue(pid)
        del self.processes[pid]
        self.remaining.pop(pid, None)
        if self.running_pid == pid:
            self.running_pid = None
        if self.selected_pid == pid:
            self.selected_pid = None
        return self._done(True, f"Process {pid} removed.")

    @atomic
    def access_address(self, pid: int, logical_addr: int, write: bool = False) -> Translation:
        """
        Translate a logical address of process `pid`.

        Raises:
            InvalidArgument: If logical_addr is negative
            UnknownPid: If pid is not live
            PageOutOfRange, PageNotPresent: Translation faults, never recovered
        """
        if logical_addr < 0:
            raise InvalidArgument(f"Logical address must be >= 0, got {logical_addr}")
        pcb = self._require(pid)
        try:
            physical = self.manager.translate(pcb, logical_addr, write=write)
        except TranslationFault:
            self.faults += 1
            raise
        self.translations += 1

        page, offset = self.manager.split_address(logical_addr)
        result = Translation(pid, logical_addr, page, offset,
                             pcb.page_table[page].frame_no, physical)
        self._done(True, f"{'Write' if write else 'Read'}: process {pid} "
                         f"address {logical_addr} -> {physical}")
        return result

    @atomic
    def select_process(self, pid: int) -> Outcome:
        self._require(pid)
        self.selected_pid = pid
        return Outcome(True, f"Process {pid} selected.")

    @atomic
    def seed_demo(self, pages: Sequence[int] = DEMO_PROCESS_PAGES) -> int:
        """
        Create demo processes 1..n sized pages[i] * page_size bytes.

        Does nothing if any process already exists.

        Returns:
            int: Number of processes created
        """
        if self.processes:
            return 0
        for i, count in enumerate(pages):
            self.create_process(i + 1, count * self.config.page_size)
        if pages:
            self.selected_pid = 1
        return len(pages)

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    @atomic
    def frame_table_snapshot(self) -> List[FrameView]:
        return [FrameView(f.frame_no, f.occupied, f.pid, f.page_no) for f in self.memory.frames]

    @atomic
    def process_list_snapshot(self) -> List[ProcessView]:
        return [
            ProcessView(p.pid, p.state.name, p.logical_size_bytes, p.page_count,
                        self.remaining.get(p.pid, 0))
            for p in self.processes.values()
        ]

    @atomic
    def page_table_snapshot(self, pid: Optional[int] = None) -> List[PageEntryView]:
        """Page table of `pid`, or of the selected process when pid is None."""
        if pid is None:
            pid = self.selected_pid
            if pid is None:
                return []
        pcb = self._require(pid)
        return [PageEntryView(e.page_no, e.present, e.frame_no, e.referenced, e.dirty)
                for e in pcb.page_table]

    @atomic
    def ready_queue_snapshot(self) -> List[int]:
        return list(self.ready_queue)

    @atomic
    def stats(self) -> Dict[str, float]:
        """
        Frame usage and scheduling counters.

        Returns:
            Dict[str, float]: total_frames, occupied_frames, free_frames,
                utilization, ticks, completed, translations, faults,
                and one count per process state (keys in lower case)
        """
        total = self.memory.num_frames
        occupied = self.memory.occupied_count()
        result = {
            "total_frames": total,
            "occupied_frames": occupied,
            "free_frames": total - occupied,
            "utilization": round(occupied / total, 4),
            "ticks": self.ticks,
            "completed": self.completed,
            "translations": self.translations,
            "faults": self.faults,
        }
        for state in ProcessState:
            result[state.name.lower()] = sum(1 for p in self.processes.values() if p.state is state)
        return result
