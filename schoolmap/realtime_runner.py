import asyncio
import json
import logging
import uuid
import webbrowser
from typing import List, Optional

from aiohttp import WSMsgType, web

from schoolmap.MapSession import LOAD_ERROR_STATUS, LOADING_STATUS, MapSession
from schoolmap.School import School
from schoolmap.config import Settings
from schoolmap.data_loader import DataLoadError, load_schools
from schoolmap.map_page import render_page
from schoolmap.ws_bus import BrowserMap, EventBus, send_status

log = logging.getLogger(__name__)

MAX_PENDING_LOADS = 32

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


def create_uuid():
    return str(uuid.uuid4())


def remember_load(app: web.Application, load_id: str, schools: List[School]) -> None:
    loads = app["loads"]
    loads[load_id] = schools
    while len(loads) > MAX_PENDING_LOADS:
        loads.pop(next(iter(loads)))


async def index(request: web.Request) -> web.Response:
    settings: Settings = request.app["settings"]
    load_id = create_uuid()

    schools: Optional[List[School]]
    try:
        schools = await asyncio.to_thread(load_schools, settings.data_source, settings.fetch_timeout_s)
    except DataLoadError:
        log.exception("Loading schools from %s failed", settings.data_source)
        schools = None

    if schools is None:
        status = LOAD_ERROR_STATUS
    else:
        status = LOADING_STATUS
        remember_load(request.app, load_id, schools)

    body = render_page(schools, load_id, status, settings)
    return web.Response(text=body, content_type="text/html", headers=NO_CACHE_HEADERS)


async def ws_handler(request: web.Request) -> web.WebSocketResponse:
    settings: Settings = request.app["settings"]
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    bus = EventBus()
    pump = asyncio.create_task(bus.pump(ws))

    schools = request.app["loads"].pop(request.query.get("load", ""), None)
    if schools is None:
        log.warning("websocket for unknown or expired load %r", request.query.get("load"))
        send_status(bus, LOAD_ERROR_STATUS)
        bus.close()
        await pump
        await ws.close()
        return ws

    session = MapSession(BrowserMap(bus), schools,
                         interval_s=settings.animate_interval_s,
                         select_zoom=settings.select_zoom)
    session.start()
    try:
        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            try:
                action = json.loads(msg.data)
            except ValueError:
                log.warning("ignoring malformed message %r", msg.data[:200])
                continue
            session.handle(action)
    finally:
        session.close()
        bus.close()
        await pump

    return ws


def make_app(settings: Settings, open_browser: bool = False) -> web.Application:
    app = web.Application()
    app["settings"] = settings
    app["loads"] = {}
    app.router.add_get("/", index)
    app.router.add_get("/ws", ws_handler)

    if open_browser:
        async def _open(app: web.Application) -> None:
            webbrowser.open(f"http://{settings.host}:{settings.port}/")
        app.on_startup.append(_open)

    return app


def start_server(settings: Settings, open_browser: bool = False) -> None:
    log.info("Serving on http://%s:%d/ (data: %s)", settings.host, settings.port, settings.data_source)
    web.run_app(make_app(settings, open_browser), host=settings.host, port=settings.port, print=None)
