from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from schoolmap.MapLike import ControlPanel
from schoolmap.RouteController import ANIMATE_INTERVAL_S, RouteController
from schoolmap.School import School
from schoolmap.TourNavigator import SELECT_ZOOM, TourNavigator
from schoolmap.ordering import sort_by_order
from schoolmap.school_filter import NO_RESULTS, filter_schools, filter_status, list_items

log = logging.getLogger(__name__)

LOADING_STATUS = "Loading schools…"
LOAD_ERROR_STATUS = "Error loading schools. Check that the data file is available."


class MapSession:
    """
    One browser page: the loaded schools, the route and the tour cursor.
    `surface` must implement both MapSurface and ControlPanel.
    """

    def __init__(self,
                 surface: Any,
                 schools: Sequence[School],
                 interval_s: float = ANIMATE_INTERVAL_S,
                 select_zoom: int = SELECT_ZOOM):
        self.surface = surface
        self.schools: List[School] = list(schools)
        self.by_id: Dict[str, School] = {s.id: s for s in self.schools}
        self.route = RouteController(surface, sort_by_order(self.schools), interval_s=interval_s)
        self.navigator = TourNavigator(surface, self.route, zoom=select_zoom)

    @property
    def panel(self) -> ControlPanel:
        return self.surface

    def start(self) -> None:
        self.panel.render_list(list_items(self.schools))
        if self.schools:
            self.panel.set_status(f"Loaded schools: {len(self.schools)}")
        else:
            self.panel.set_status(NO_RESULTS)

        if len(self.route.ordered) >= 2:
            self.route.draw_full(animate=True)
            self.navigator.cursor = 0

    def close(self) -> None:
        self.route.close()

    def search(self, query: str) -> List[School]:
        shown = filter_schools(self.schools, query)
        self.panel.render_list(list_items(shown))
        self.panel.set_status(filter_status(len(shown), len(self.schools)))
        return shown

    def select(self, school_id: Any) -> Optional[School]:
        school = self.by_id.get(str(school_id))
        if school is None:
            log.warning("select: unknown school id %r", school_id)
            return None
        self.navigator.select(school)
        return school

    def handle(self, action: Dict[str, Any]) -> None:
        kind = action.get("type") if isinstance(action, dict) else None
        if kind == "select":
            self.select(action.get("id"))
        elif kind == "next":
            self.navigator.next()
        elif kind == "reset":
            self.navigator.reset()
        elif kind == "search":
            self.search(str(action.get("q") or ""))
        else:
            log.warning("ignoring unknown action %r", action)
