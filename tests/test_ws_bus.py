import asyncio

from schoolmap.ws_bus import BrowserMap, EventBus


class BrokenSocket:
    closed = False

    def __init__(self):
        self.sent = []

    async def send_json(self, event):
        self.sent.append(event)
        raise ConnectionResetError("peer went away")


class RecordingSocket:
    closed = False

    def __init__(self):
        self.sent = []

    async def send_json(self, event):
        self.sent.append(event)


async def _test_events_are_sent_in_order():
    bus = EventBus()
    ws = RecordingSocket()
    surface = BrowserMap(bus)

    line = surface.polyline([(1.0, 2.0)], weight=4)
    line.add_latlng((3.0, 4.0))
    surface.remove_layer(line)
    surface.set_status("ok")
    bus.close()
    await asyncio.wait_for(bus.pump(ws), 1.0)

    assert [(e["type"], e.get("op")) for e in ws.sent] == [
        ("line", "create"), ("line", "append"), ("line", "remove"), ("status", None),
    ]
    assert ws.sent[0]["latlngs"] == [[1.0, 2.0]]
    assert ws.sent[1]["latlng"] == [3.0, 4.0]


def test_events_are_sent_in_order():
    asyncio.run(_test_events_are_sent_in_order())


async def _test_dead_connection_stops_queueing():
    bus = EventBus()
    ws = BrokenSocket()
    surface = BrowserMap(bus)

    surface.set_status("first")
    surface.set_status("second")
    await asyncio.wait_for(bus.pump(ws), 1.0)

    assert len(ws.sent) == 1
    assert bus.closed
    assert bus.pending() == 0

    for i in range(100):
        surface.set_view((42.0, 23.0), i)
    bus.close()
    assert bus.pending() == 0


def test_dead_connection_stops_queueing():
    asyncio.run(_test_dead_connection_stops_queueing())
