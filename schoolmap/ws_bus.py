import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional, Sequence

from aiohttp import web

from schoolmap.MapLike import LatLon

log = logging.getLogger(__name__)


class EventBus:
    """Per-connection queue; sync code publishes, one task sends."""

    def __init__(self) -> None:
        self._q: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def publish(self, event: Dict[str, Any]) -> None:
        if self.closed:
            return
        self._q.put_nowait(event)

    def close(self) -> None:
        if not self.closed:
            self._q.put_nowait(None)

    def pending(self) -> int:
        return self._q.qsize()

    async def pump(self, ws: web.WebSocketResponse) -> None:
        while True:
            event = await self._q.get()
            if event is None or ws.closed:
                break
            try:
                await ws.send_json(event)
            except ConnectionResetError:
                log.warning("websocket gone, dropping %s event", event.get("type"))
                break
        # nobody sends any more: drop what is queued and refuse new events
        self.closed = True
        while not self._q.empty():
            self._q.get_nowait()


def send_status(bus: EventBus, text: str, **extra) -> None:
    event = {"type": "status", "text": text}
    event.update(extra)
    bus.publish(event)


class BrowserPolyline:
    def __init__(self, bus: EventBus, line_id: str, latlngs: Sequence[LatLon]):
        self.bus = bus
        self.line_id = line_id
        self.latlngs: List[LatLon] = list(latlngs)

    def add_latlng(self, latlng: LatLon) -> None:
        self.latlngs.append(latlng)
        self.bus.publish({"type": "line", "op": "append", "id": self.line_id, "latlng": list(latlng)})


class BrowserMap:
    """
    Map surface + control panel living in the browser.
    Each call becomes one event on the connection's bus; the page script
    replays it against Leaflet.
    """

    def __init__(self, bus: EventBus):
        self.bus = bus
        self._ids = itertools.count(1)

    def set_view(self, center: LatLon, zoom: int) -> None:
        self.bus.publish({"type": "view", "center": list(center), "zoom": zoom})

    def polyline(self, latlngs: Sequence[LatLon], **style: Any) -> BrowserPolyline:
        line = BrowserPolyline(self.bus, f"line{next(self._ids)}", latlngs)
        self.bus.publish({
            "type": "line",
            "op": "create",
            "id": line.line_id,
            "latlngs": [list(p) for p in line.latlngs],
            "style": style,
        })
        return line

    def remove_layer(self, layer: BrowserPolyline) -> None:
        self.bus.publish({"type": "line", "op": "remove", "id": layer.line_id})

    def show_marker(self, school_id: str) -> None:
        self.bus.publish({"type": "reveal", "id": school_id})

    def set_status(self, text: Optional[str]) -> None:
        send_status(self.bus, text or "")

    def render_list(self, items: List[Dict[str, Any]]) -> None:
        self.bus.publish({"type": "list", "items": items})
