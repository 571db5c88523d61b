# engine.py
"""
Paging engine: physical frames, per-process page tables and the memory
manager that binds one to the other.

Physical memory is a fixed array of frames. A process (PCB) owns a page
table with one entry per logical page. Admission binds every page of a
process to a free frame in a single all-or-nothing step; release undoes
it; translation turns a logical address into a physical one through the
page table. Nothing is ever evicted to make room.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type


# =============================================================================
# ERRORS
# =============================================================================

class SimulatorError(Exception):
    """Base class for every error the simulator reports to its caller."""


class InvalidArgument(SimulatorError, ValueError):
    """Negative pid/size/address, or a missing reference."""


class DuplicatePid(InvalidArgument):
    """A live process already uses this pid."""


class UnknownPid(SimulatorError, KeyError):
    """No live process has this pid."""

    def __init__(self, pid: int):
        super().__init__(pid)
        self.pid = pid

    def __str__(self) -> str:
        return f"Unknown PID: {self.pid}"


class AlreadyMapped(SimulatorError):
    """Admission requested for a process that still has pages in memory."""


class AlreadyAdmitted(SimulatorError):
    """Manual admission of a process that is already READY or RUNNING."""


class ProcessTerminated(SimulatorError):
    """The process is TERMINATED; no allocation or translation is allowed."""


class TranslationFault(SimulatorError, IndexError):
    """
    Address translation failed.

    Attributes:
        pid (int): Process whose address was translated
        logical_address (int): The faulting logical address
        page (int): Page number derived from the address
        offset (int): Offset within that page
    """

    reason = "Translation fault"

    def __init__(self, pid: int, logical_address: int, page: int, offset: int):
        self.pid = pid
        self.logical_address = logical_address
        self.page = page
        self.offset = offset
        super().__init__(self._message())

    def _message(self) -> str:
        return (f"{self.reason}: pid={self.pid} address={self.logical_address} "
                f"(page {self.page}, offset {self.offset})")


class PageOutOfRange(TranslationFault):
    """The page number is beyond the process's page table."""

    reason = "Page out of range"

    def __init__(self, pid: int, logical_address: int, page: int, offset: int, page_count: int):
        self.page_count = page_count
        super().__init__(pid, logical_address, page, offset)

    def _message(self) -> str:
        return super()._message() + f"; valid pages are 0..{self.page_count - 1}"


class PageNotPresent(TranslationFault):
    """The page exists but is not bound to a frame."""

    reason = "Page not present in memory"


# =============================================================================
# DATA MODEL
# =============================================================================

class ProcessState(Enum):
    """Lifecycle states of a simulated process."""
    NEW = "NEW"
    READY = "READY"
    RUNNING = "RUNNING"
    WAITING = "WAITING"
    SUSP_READY = "SUSP_READY"
    TERMINATED = "TERMINATED"


@dataclass
class Frame:
    """
    Represents a physical memory frame.

    A frame is free exactly when it has no owner; assign() and clear() are
    the only places that change that.

    Attributes:
        frame_no (int): The frame's index in physical memory
        occupied (bool): True if a page is currently loaded here
        pid (Optional[int]): Owning process, None if free
        page_no (Optional[int]): Owning process's page stored here, None if free
    """
    frame_no: int
    occupied: bool = False
    pid: Optional[int] = None
    page_no: Optional[int] = None

    def assign(self, pid: int, page_no: int):
        self.occupied = True
        self.pid = pid
        self.page_no = page_no

    def clear(self):
        self.occupied = False
        self.pid = None
        self.page_no = None


@dataclass
class PageTableEntry:
    """
    One entry of a process page table.

    Attributes:
        page_no (int): The logical page number this entry represents
        frame_no (Optional[int]): Bound frame, None if not in memory
        present (bool): True if the page is bound to a frame
        referenced (bool): Set by every successful translation
        dirty (bool): Set by a write translation
    """
    page_no: int
    frame_no: Optional[int] = None
    present: bool = False
    referenced: bool = False
    dirty: bool = False

    def bind(self, frame_no: int):
        self.frame_no = frame_no
        self.present = True
        self.referenced = False
        self.dirty = False

    def reset(self):
        self.frame_no = None
        self.present = False
        self.referenced = False
        self.dirty = False


@dataclass
class PCB:
    """
    Process control block.

    Attributes:
        pid (int): Caller-assigned process id (>= 0)
        logical_size_bytes (int): Size of the address space (> 0)
        page_size (int): Page size used to split the address space
        page_count (int): ceil(logical_size_bytes / page_size)
        page_table (List[PageTableEntry]): One entry per page, in order
        state (ProcessState): Current lifecycle state
    """
    pid: int
    logical_size_bytes: int
    page_size: int
    state: ProcessState = ProcessState.NEW
    page_count: int = field(init=False)
    page_table: List[PageTableEntry] = field(init=False)

    def __post_init__(self):
        if self.pid < 0:
            raise InvalidArgument(f"PID must be non-negative, got {self.pid}")
        if self.logical_size_bytes <= 0:
            raise InvalidArgument(f"Process size must be positive, got {self.logical_size_bytes}")
        if self.page_size <= 0:
            raise InvalidArgument(f"Page size must be positive, got {self.page_size}")
        self.page_count = math.ceil(self.logical_size_bytes / self.page_size)
        self.page_table = [PageTableEntry(p) for p in range(self.page_count)]

    def is_mapped(self) -> bool:
        """True if any page is currently bound to a frame."""
        return any(e.present for e in self.page_table)

    def frames(self) -> List[Optional[int]]:
        """Frame bound to each page, in page order."""
        return [e.frame_no for e in self.page_table]


class PhysicalMemory:
    """
    Physical memory: a page size and a fixed frame table.

    Attributes:
        page_size (int): Size of each page/frame in bytes
        frames (List[Frame]): The frame table, indexed by frame number
    """

    def __init__(self, page_size: int, num_frames: int):
        if page_size <= 0:
            raise InvalidArgument(f"Page size must be positive, got {page_size}")
        if num_frames <= 0:
            raise InvalidArgument(f"Frame count must be positive, got {num_frames}")
        self.page_size = page_size
        self.frames: List[Frame] = [Frame(i) for i in range(num_frames)]

    @property
    def num_frames(self) -> int:
        return len(self.frames)

    def free_frames(self) -> List[int]:
        """Indices of free frames in ascending order."""
        return [f.frame_no for f in self.frames if not f.occupied]

    def occupied_count(self) -> int:
        return sum(1 for f in self.frames if f.occupied)

    def free_count(self) -> int:
        return self.num_frames - self.occupied_count()


# =============================================================================
# MEMORY MANAGER
# =============================================================================

class MemoryManager:
    """
    Allocates frames to processes and translates their addresses.

    admit/release/translate are shared by every policy; a subclass only
    decides which free frames a process gets by overriding choose_frames().
    """

    name = "Abstract"

    def __init__(self, memory: PhysicalMemory):
        if memory is None:
            raise InvalidArgument("Physical memory must not be None")
        self.memory = memory

    @property
    def page_size(self) -> int:
        return self.memory.page_size

    def choose_frames(self, free: List[int], count: int) -> List[int]:
        """
        Pick `count` frames out of `free` (ascending, len(free) >= count).

        Returns:
            List[int]: Frames for pages 0..count-1, in that order
        """
        raise NotImplementedError

    # -----------------------------
    # Admission
    # -----------------------------
    def admit(self, pcb: PCB) -> bool:
        """
        Bind every page of `pcb` to a free frame, or bind nothing.

        Args:
            pcb (PCB): Process to admit

        Returns:
            bool: True if all pages were bound, False if there were not
                  enough free frames (no state changed)

        Raises:
            InvalidArgument: If pcb is None
            ProcessTerminated: If pcb is TERMINATED
            AlreadyMapped: If any page of pcb is already present
        """
        if pcb is None:
            raise InvalidArgument("PCB must not be None")
        if pcb.state is ProcessState.TERMINATED:
            raise ProcessTerminated(f"Process {pcb.pid} is terminated")
        if pcb.is_mapped():
            raise AlreadyMapped(f"Process {pcb.pid} is already mapped in memory")

        need = pcb.page_count
        if need == 0:
            return True

        free = self.memory.free_frames()
        if len(free) < need:
            return False

        chosen = self.choose_frames(free, need)
        for page_no, frame_no in enumerate(chosen):
            self.memory.frames[frame_no].assign(pcb.pid, page_no)
            pcb.page_table[page_no].bind(frame_no)
        return True

    # -----------------------------
    # Release
    # -----------------------------
    def release(self, pcb: PCB):
        """
        Free every frame owned by `pcb` and reset its page table.

        Idempotent: releasing a process with nothing mapped does nothing.
        """
        if pcb is None:
            raise InvalidArgument("PCB must not be None")
        for f in self.memory.frames:
            if f.occupied and f.pid == pcb.pid:
                f.clear()
        for e in pcb.page_table:
            e.reset()

    # -----------------------------
    # Translation
    # -----------------------------
    def split_address(self, logical_addr: int) -> Tuple[int, int]:
        """Break a logical address into (page, offset)."""
        return logical_addr // self.page_size, logical_addr % self.page_size

    def translate(self, pcb: PCB, logical_addr: int, write: bool = False) -> int:
        """
        Translate a logical address of `pcb` to a physical address.

        Marks the page referenced (and dirty when `write` is set). Never
        allocates: a page that is not present is always a fault.

        Raises:
            InvalidArgument: If pcb is None or logical_addr is negative
            ProcessTerminated: If pcb is TERMINATED
            PageOutOfRange: If the page is beyond pcb's page table
            PageNotPresent: If the page is not bound to a frame
        """
        if pcb is None:
            raise InvalidArgument("PCB must not be None")
        if logical_addr < 0:
            raise InvalidArgument(f"Logical address must be >= 0, got {logical_addr}")
        if pcb.state is ProcessState.TERMINATED:
            raise ProcessTerminated(f"Process {pcb.pid} is terminated")

        page, offset = self.split_address(logical_addr)
        if page >= pcb.page_count:
            raise PageOutOfRange(pcb.pid, logical_addr, page, offset, pcb.page_count)

        entry = pcb.page_table[page]
        if not entry.present or entry.frame_no is None:
            raise PageNotPresent(pcb.pid, logical_addr, page, offset)

        entry.referenced = True
        if write:
            entry.dirty = True
        return entry.frame_no * self.page_size + offset


# -----------------------------
# Placement policies
# -----------------------------

def free_runs(free: List[int]) -> List[Tuple[int, int]]:
    """
    Group ascending frame indices into runs of consecutive frames.

    Returns:
        List[Tuple[int, int]]: (start index into `free`, run length)
    """
    runs = []
    start = 0
    for i in range(1, len(free) + 1):
        if i == len(free) or free[i] != free[i - 1] + 1:
            runs.append((start, i - start))
            start = i
    return runs


class FirstFitMemoryManager(MemoryManager):
    """Lowest-index free frames, bound in ascending order."""

    name = "First-Fit"

    def choose_frames(self, free: List[int], count: int) -> List[int]:
        return free[:count]


class BestFitMemoryManager(MemoryManager):
    """
    Smallest run of contiguous free frames that holds the whole process.

    Falls back to first-fit when no single run is large enough.
    """

    name = "Best-Fit"

    def choose_frames(self, free: List[int], count: int) -> List[int]:
        best_start = None
        best_size = float('inf')

        for start, size in free_runs(free):
            if size >= count and size < best_size:
                best_size = size
                best_start = start

        if best_start is None:
            return free[:count]
        return free[best_start:best_start + count]


class WorstFitMemoryManager(MemoryManager):
    """
    Largest run of contiguous free frames, if it holds the whole process.

    Falls back to first-fit when no single run is large enough.
    """

    name = "Worst-Fit"

    def choose_frames(self, free: List[int], count: int) -> List[int]:
        worst_start = None
        worst_size = -1

        for start, size in free_runs(free):
            if size >= count and size > worst_size:
                worst_size = size
                worst_start = start

        if worst_start is None:
            return free[:count]
        return free[worst_start:worst_start + count]


MEMORY_MANAGERS: Dict[str, Type[MemoryManager]] = {
    cls.name: cls
    for cls in (FirstFitMemoryManager, BestFitMemoryManager, WorstFitMemoryManager)
}


def make_memory_manager(placement: str, memory: PhysicalMemory) -> MemoryManager:
    """Build the memory manager registered under `placement`."""
    try:
        cls = MEMORY_MANAGERS[placement]
    except KeyError:
        raise InvalidArgument(f"Unknown placement policy: {placement!r}") from None
    return cls(memory)
