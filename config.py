# config.py
# Default settings for the paging / scheduling simulator.

from dataclasses import dataclass

from engine import InvalidArgument

# === Physical memory ===
PAGE_SIZE = 1000        # bytes per page / frame
NUM_FRAMES = 25         # frames in physical memory

# === Scheduler ===
TICK_PERIOD_MS = 700    # wall-clock period of one simulation tick
TICKS_PER_PAGE = 2      # execution budget charged per page of a process
TICK_DUE_FRACTION = 0.9  # share of the period that must pass before a host-driven tick fires

# === Placement ===
PLACEMENT_POLICIES = ("First-Fit", "Best-Fit", "Worst-Fit")
DEFAULT_PLACEMENT = "First-Fit"

# === Event log ===
EVENT_LOG_LIMIT = 200   # most recent lines kept in memory

# === Demo workload: page count of each seeded process (pids 1..n) ===
DEMO_PROCESS_PAGES = (4, 6, 3, 8, 5, 7, 2, 10)


@dataclass
class SimulationConfig:
    """
    Constants the host supplies when building a simulator.

    Attributes:
        page_size (int): Size of each page/frame in bytes
        num_frames (int): Number of frames in physical memory
        tick_period_ms (int): Period of the tick clock in milliseconds
        ticks_per_page (int): Execution ticks charged per page
        placement (str): Frame placement policy name
    """
    page_size: int = PAGE_SIZE
    num_frames: int = NUM_FRAMES
    tick_period_ms: int = TICK_PERIOD_MS
    ticks_per_page: int = TICKS_PER_PAGE
    placement: str = DEFAULT_PLACEMENT

    @property
    def tick_period_s(self) -> float:
        return self.tick_period_ms / 1000.0

    def validate(self) -> "SimulationConfig":
        """
        Check every field, raising InvalidArgument on the first bad one.

        Returns:
            SimulationConfig: self, so calls can be chained
        """
        for name in ("page_size", "num_frames", "tick_period_ms", "ticks_per_page"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")
        if self.placement not in PLACEMENT_POLICIES:
            raise InvalidArgument(f"Unknown placement policy: {self.placement!r}")
        return self
