# utils.py

from dataclasses import asdict
from typing import Dict, List, Optional, Sequence

FREE_COLOR = "#d3d3d3"  # light grey


def get_color(pid: Optional[int]) -> str:
    """Return a stable pastel color for a process, grey for a free frame."""
    if pid is None:
        return FREE_COLOR
    # golden-angle hue steps keep neighbouring pids apart
    return f"hsl({(pid * 137) % 360}, 70%, 75%)"


def frame_label(frame) -> str:
    if not frame.occupied:
        return f"F{frame.frame_no}: Free"
    return f"F{frame.frame_no}: P{frame.pid}.{frame.page_no}"


def to_rows(views: Sequence) -> List[Dict]:
    """Turn snapshot dataclasses into table rows, showing '-' for empty fields."""
    rows = []
    for v in views:
        rows.append({k: ("-" if val is None else val) for k, val in asdict(v).items()})
    return rows
