import pytest

from config import SimulationConfig
from engine import FirstFitMemoryManager, PhysicalMemory
from scheduler import Simulator

PAGE_SIZE = 1000
NUM_FRAMES = 25


@pytest.fixture
def memory() -> PhysicalMemory:
    return PhysicalMemory(PAGE_SIZE, NUM_FRAMES)


@pytest.fixture
def manager(memory: PhysicalMemory) -> FirstFitMemoryManager:
    return FirstFitMemoryManager(memory)


@pytest.fixture
def sim() -> Simulator:
    return Simulator(SimulationConfig(page_size=PAGE_SIZE, num_frames=NUM_FRAMES))


@pytest.fixture
def make_sim():
    """Build a simulator with custom settings."""

    def _make(**kwargs) -> Simulator:
        kwargs.setdefault("page_size", PAGE_SIZE)
        return Simulator(SimulationConfig(**kwargs))

    return _make
