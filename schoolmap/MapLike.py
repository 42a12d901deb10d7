from typing import Any, Dict, List, Protocol, Sequence, Tuple

LatLon = Tuple[float, float]  # (lat, lng)


class PolylineLike(Protocol):
    def add_latlng(self, latlng: LatLon) -> None: ...


class MapSurface(Protocol):
    def set_view(self, center: LatLon, zoom: int) -> None: ...

    def polyline(self, latlngs: Sequence[LatLon], **style: Any) -> PolylineLike: ...

    def remove_layer(self, layer: PolylineLike) -> None: ...

    # zoom the marker out of its cluster and open its popup
    def show_marker(self, school_id: str) -> None: ...


class ControlPanel(Protocol):
    def set_status(self, text: str) -> None: ...

    def render_list(self, items: List[Dict[str, Any]]) -> None: ...
