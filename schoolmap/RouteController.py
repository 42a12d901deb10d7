from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple

from schoolmap.MapLike import LatLon, MapSurface, PolylineLike
from schoolmap.School import School
from schoolmap.ordering import index_of_id, index_of_order

log = logging.getLogger(__name__)

ANIMATE_INTERVAL_S = 0.12
LINE_STYLE = {"weight": 4, "opacity": 0.9}


class Phase(Enum):
    IDLE = auto()
    ANIMATING = auto()


class RouteController:
    """
    Draws the tour polyline up to a position in the ordered sequence.

    Owns exactly one line and at most one animation task. Every draw request
    first goes back to IDLE (task cancelled, line removed) and only then
    builds the new line, so two animations never run at the same time.
    """

    def __init__(self,
                 surface: MapSurface,
                 ordered: Sequence[School],
                 interval_s: float = ANIMATE_INTERVAL_S):
        self.surface = surface
        self.ordered: Tuple[School, ...] = tuple(ordered)
        self.interval_s = interval_s
        self.line: Optional[PolylineLike] = None
        self.phase = Phase.IDLE
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def animating(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def target_index(self, idx: Optional[int]) -> int:
        max_idx = len(self.ordered) - 1
        if idx is None:
            return max_idx
        return max(0, min(idx, max_idx))

    def prefix(self, target: int) -> List[LatLon]:
        return [s.latlng for s in self.ordered[:target + 1]]

    def draw_to_index(self, idx: Optional[int] = None, animate: bool = True) -> None:
        loop = asyncio.get_running_loop() if animate else None

        target = self.target_index(idx)
        points = self.prefix(target)
        self._reset()

        if len(points) < 2:
            log.debug("route to index %s has %d point(s), nothing to draw", target, len(points))
            return

        initial = points[:1] if animate else points
        self.line = self.surface.polyline(initial, **LINE_STYLE)
        log.debug("route drawn to index %d (%d points, animate=%s)", target, len(points), animate)

        if animate:
            self.phase = Phase.ANIMATING
            self._task = loop.create_task(self._animate(self.line, points))

    def draw_full(self, animate: bool = True) -> None:
        self.draw_to_index(None, animate=animate)

    def draw_to_order(self, order_number: int, animate: bool = True) -> None:
        idx = index_of_order(self.ordered, order_number)
        if idx is None:
            log.debug("order %s not on the route, drawing full route", order_number)
            self.draw_full(animate=animate)
        else:
            self.draw_to_index(idx, animate=animate)

    def draw_to_school_id(self, school_id: str, animate: bool = True) -> None:
        idx = index_of_id(self.ordered, school_id)
        if idx is None:
            log.debug("school %s not on the route, drawing full route", school_id)
            self.draw_full(animate=animate)
        else:
            self.draw_to_index(idx, animate=animate)

    def close(self) -> None:
        self._reset()

    def _reset(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self.line is not None:
            self.surface.remove_layer(self.line)
            self.line = None
        self.phase = Phase.IDLE
        self.ticks = 0

    async def _animate(self, line: PolylineLike, points: List[LatLon]) -> None:
        try:
            for point in points[1:]:
                await asyncio.sleep(self.interval_s)
                if self.line is not line:
                    return
                line.add_latlng(point)
                self.ticks += 1
        finally:
            # a replaced task must not touch the state of its successor
            if self._task is asyncio.current_task():
                self._task = None
                self.phase = Phase.IDLE
