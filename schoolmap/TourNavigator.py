from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from schoolmap.MapLike import MapSurface
from schoolmap.RouteController import RouteController
from schoolmap.School import School
from schoolmap.ordering import index_of_id

log = logging.getLogger(__name__)

SELECT_ZOOM = 12


@dataclass
class TourNavigator:
    surface: MapSurface
    route: RouteController
    zoom: int = SELECT_ZOOM
    cursor: int = 0

    @property
    def ordered(self) -> Tuple[School, ...]:
        return self.route.ordered

    def select(self, school: School) -> None:
        self.surface.set_view(school.latlng, self.zoom)
        self.surface.show_marker(school.id)

        if school.order is None:
            return
        idx = index_of_id(self.ordered, school.id)
        if idx is not None:
            self.cursor = idx
        self.route.draw_to_order(school.order, animate=True)

    def next(self) -> Optional[School]:
        if not self.ordered:
            return None

        school = self.ordered[self.cursor % len(self.ordered)]
        self.select(school)
        self.cursor = (self.cursor + 1) % len(self.ordered)
        log.debug("tour at %s, cursor -> %d", school.id, self.cursor)
        return school

    def reset(self) -> None:
        self.route.draw_full(animate=True)
