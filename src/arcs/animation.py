"""
Dash animation clock.

Each arc owns a random dash rate drawn from a fixed range. On every
frame its dash offset decreases by that rate. The clock keeps this
state keyed by arc id; arc geometry is never touched.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
from zlib import crc32

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_RATE_RANGE = (0.001, 0.005)


def _u32(x: int) -> int:
    return int(x & 0xFFFFFFFF)


@dataclass
class DashState:
    """Per-arc animation state."""
    rate: float
    offset: float = 0.0


class AnimationClock:
    """
    Per-arc dash offsets advanced once per rendered frame.

    With a seed, an arc's rate depends only on (seed, arc_id), so rates
    are stable no matter the registration order. Without one, rates come
    from fresh entropy.
    """

    def __init__(
        self,
        rate_range: Tuple[float, float] = DEFAULT_RATE_RANGE,
        seed: Optional[int] = None
    ):
        low, high = rate_range
        if low < 0 or high < low:
            raise ValueError(f"invalid rate range {rate_range}")
        self.rate_range = (float(low), float(high))
        self.seed = seed
        self._rng = np.random.default_rng() if seed is None else None
        self._states: Dict[str, DashState] = {}
        self._frame: Optional[int] = None

    def _draw_rate(self, arc_id: str) -> float:
        low, high = self.rate_range
        if self._rng is not None:
            return float(self._rng.uniform(low, high))
        ss = np.random.SeedSequence([_u32(self.seed), _u32(crc32(arc_id.encode("utf-8")))])
        return float(np.random.Generator(np.random.PCG64(ss)).uniform(low, high))

    def register(self, arc_id: str) -> float:
        """Give an arc its rate (no-op if already registered); returns the rate."""
        state = self._states.get(arc_id)
        if state is None:
            state = DashState(rate=self._draw_rate(arc_id))
            self._states[arc_id] = state
        return state.rate

    def register_all(self, arc_ids: Iterable[str]) -> None:
        for arc_id in arc_ids:
            self.register(arc_id)

    def unregister(self, arc_id: str) -> None:
        self._states.pop(arc_id, None)

    def __contains__(self, arc_id: str) -> bool:
        return arc_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    @property
    def frame(self) -> Optional[int]:
        """Last frame ticked, None before the first tick."""
        return self._frame

    def rate(self, arc_id: str) -> float:
        return self._states[arc_id].rate

    def phase(self, arc_id: str) -> float:
        """Current dash offset of an arc."""
        return self._states[arc_id].offset

    def tick(self, frame: int) -> bool:
        """
        Advance every arc by one frame.

        Ticking the same frame number again changes nothing, and frames
        older than the last one are ignored.

        Returns:
            True if offsets moved
        """
        if self._frame is not None and frame <= self._frame:
            return False
        for state in self._states.values():
            state.offset -= state.rate
        self._frame = frame
        return True

    def run(self, n_frames: int) -> None:
        """Tick n_frames consecutive frames after the current one."""
        start = 0 if self._frame is None else self._frame + 1
        for frame in range(start, start + n_frames):
            self.tick(frame)

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        return {
            arc_id: {"rate": s.rate, "offset": s.offset}
            for arc_id, s in self._states.items()
        }
