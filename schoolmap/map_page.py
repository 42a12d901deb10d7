from __future__ import annotations

import html
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import folium
from branca.element import MacroElement
from folium.plugins import MarkerCluster
from jinja2 import Template

from schoolmap.RouteController import LINE_STYLE
from schoolmap.School import School
from schoolmap.config import Settings
from schoolmap.ordering import sort_by_order

log = logging.getLogger(__name__)

TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
TILE_ATTR = "&copy; OpenStreetMap"
BOUNDS_PAD = 0.2


def popup_html(s: School) -> str:
    name = html.escape(s.name)
    city = html.escape(s.city)
    desc = html.escape(s.description)
    photo = (
        f'<img src="{html.escape(s.photo)}" alt="{name}" '
        f'style="width:100%;max-width:280px;border-radius:12px;margin:8px 0;" />'
        if s.photo else ""
    )
    link = (
        f'<div style="margin-top:8px;"><a href="{html.escape(s.link)}" target="_blank" '
        f'rel="noopener">Open publication / materials</a></div>'
        if s.link else ""
    )
    order = (
        f'<div style="opacity:.8;font-size:12px;margin-top:6px;">Route №{s.order}</div>'
        if s.order is not None else ""
    )
    return (
        '<div style="min-width:240px;max-width:320px;">'
        f'<div style="font-weight:800;margin-bottom:2px;">{name}</div>'
        f'<div style="opacity:.8;margin-bottom:6px;">{city}</div>'
        f"{photo}"
        f'<div style="font-size:13px;line-height:1.35;">{desc}</div>'
        f"{link}{order}"
        "</div>"
    )


def padded_bounds(schools: Sequence[School], pad: float = BOUNDS_PAD) -> Optional[List[List[float]]]:
    """[[south, west], [north, east]] grown by `pad` of the span on every side."""
    if len(schools) < 2:
        return None
    lats = [s.lat for s in schools]
    lngs = [s.lng for s in schools]
    d_lat = (max(lats) - min(lats)) * pad
    d_lng = (max(lngs) - min(lngs)) * pad
    return [[min(lats) - d_lat, min(lngs) - d_lng], [max(lats) + d_lat, max(lngs) + d_lng]]


def init_map(settings: Settings) -> folium.Map:
    m = folium.Map(location=list(settings.center), zoom_start=settings.zoom, tiles=None)
    folium.TileLayer(tiles=TILE_URL, attr=TILE_ATTR, max_zoom=19, name="OpenStreetMap").add_to(m)
    return m


def add_school_markers(m: folium.Map, schools: Sequence[School]) -> Tuple[MarkerCluster, Dict[str, str]]:
    cluster = MarkerCluster(chunked_loading=True, show_coverage_on_hover=False, spiderfy_on_max_zoom=True)
    names: Dict[str, str] = {}
    for s in schools:
        marker = folium.Marker(
            location=list(s.latlng),
            popup=folium.Popup(popup_html(s), max_width=320),
            tooltip=s.name or None,
        )
        marker.add_to(cluster)
        names[s.id] = marker.get_name()
    cluster.add_to(m)

    bounds = padded_bounds(schools)
    if bounds is not None:
        m.fit_bounds(bounds)
    return cluster, names


class TourControls(MacroElement):
    """Search box, list, tour buttons and status line, driven over a websocket."""

    _template = Template("""
        {% macro header(this, kwargs) %}
            <style>
                #schoolmap-panel { position: absolute; top: 10px; left: 54px; z-index: 1000;
                    width: 300px; max-height: calc(100% - 20px); display: flex; flex-direction: column;
                    background: #fff; border-radius: 12px; box-shadow: 0 2px 10px rgba(0,0,0,.25);
                    font: 14px/1.3 system-ui, sans-serif; padding: 10px; box-sizing: border-box; }
                #schoolmap-panel input { width: 100%; padding: 6px 8px; box-sizing: border-box; }
                #schoolmap-panel .buttons { display: flex; gap: 6px; margin: 8px 0; }
                #schoolmap-panel .buttons button { flex: 1; padding: 6px; cursor: pointer; }
                #schoolmap-status { opacity: .8; font-size: 12px; min-height: 1.2em; }
                #schoolmap-list { list-style: none; margin: 8px 0 0; padding: 0; overflow-y: auto; }
                #schoolmap-list li { padding: 6px 4px; border-top: 1px solid #eee; cursor: pointer; }
                #schoolmap-list li .name { font-weight: 600; }
                #schoolmap-list li .meta { opacity: .7; font-size: 12px; }
            </style>
        {% endmacro %}

        {% macro html(this, kwargs) %}
            <div id="schoolmap-panel" data-load="{{ this.load_id or '' }}">
                <input id="schoolmap-search" type="search" placeholder="Search by name or city" />
                <div class="buttons">
                    <button id="schoolmap-next" type="button">Next</button>
                    <button id="schoolmap-reset" type="button">Reset route</button>
                </div>
                <div id="schoolmap-status">{{ this.status|e }}</div>
                <ul id="schoolmap-list"></ul>
            </div>
        {% endmacro %}

        {% macro script(this, kwargs) %}
            (function () {
                var loadId = {{ this.load_id|tojson }};
                if (loadId === null) { return; }

                var map = {{ this._parent.get_name() }};
                var cluster = {{ this.cluster_name }};
                var markers = {
                {%- for sid, name in this.marker_names.items() %}
                    {{ sid|tojson }}: {{ name }},
                {%- endfor %}
                };
                var lines = {};
                var statusEl = document.getElementById("schoolmap-status");
                var listEl = document.getElementById("schoolmap-list");

                var scheme = location.protocol === "https:" ? "wss://" : "ws://";
                var ws = new WebSocket(scheme + location.host + "/ws?load=" + encodeURIComponent(loadId));

                function send(msg) {
                    if (ws.readyState === 1) { ws.send(JSON.stringify(msg)); }
                }

                function renderList(items) {
                    listEl.innerHTML = "";
                    if (!items.length) {
                        var empty = document.createElement("li");
                        empty.style.cursor = "default";
                        empty.textContent = "No results.";
                        listEl.appendChild(empty);
                        return;
                    }
                    items.forEach(function (item) {
                        var li = document.createElement("li");
                        var name = document.createElement("div");
                        var meta = document.createElement("div");
                        name.className = "name";
                        meta.className = "meta";
                        name.textContent = item.name;
                        meta.textContent = item.meta;
                        li.appendChild(name);
                        li.appendChild(meta);
                        li.addEventListener("click", function () { send({type: "select", id: item.id}); });
                        listEl.appendChild(li);
                    });
                }

                function applyLine(e) {
                    if (e.op === "create") {
                        lines[e.id] = L.polyline(e.latlngs, e.style).addTo(map);
                    } else if (e.op === "append" && lines[e.id]) {
                        lines[e.id].addLatLng(e.latlng);
                    } else if (e.op === "remove" && lines[e.id]) {
                        map.removeLayer(lines[e.id]);
                        delete lines[e.id];
                    }
                }

                ws.onmessage = function (ev) {
                    var e = JSON.parse(ev.data);
                    if (e.type === "status") {
                        statusEl.textContent = e.text || "";
                    } else if (e.type === "list") {
                        renderList(e.items);
                    } else if (e.type === "line") {
                        applyLine(e);
                    } else if (e.type === "view") {
                        map.setView(e.center, e.zoom, {animate: true});
                    } else if (e.type === "reveal") {
                        var m = markers[e.id];
                        if (m) { cluster.zoomToShowLayer(m, function () { m.openPopup(); }); }
                    }
                };
                ws.onclose = function () {
                    statusEl.textContent = "Connection closed. Reload the page.";
                };

                Object.keys(markers).forEach(function (id) {
                    markers[id].on("click", function () { send({type: "select", id: id}); });
                });
                document.getElementById("schoolmap-search").addEventListener("input", function (ev) {
                    send({type: "search", q: ev.target.value});
                });
                document.getElementById("schoolmap-next").addEventListener("click", function () {
                    send({type: "next"});
                });
                document.getElementById("schoolmap-reset").addEventListener("click", function () {
                    send({type: "reset"});
                });
            })();
        {% endmacro %}
    """)

    def __init__(self, cluster: MarkerCluster, marker_names: Dict[str, str],
                 load_id: Optional[str], status: str = ""):
        super().__init__()
        self._name = "TourControls"
        self.cluster_name = cluster.get_name()
        self.marker_names = marker_names
        self.load_id = load_id
        self.status = status


def render_page(schools: Optional[Sequence[School]],
                load_id: Optional[str],
                status: str,
                settings: Settings) -> str:
    """Interactive page. `schools` is None when loading failed."""
    m = init_map(settings)
    cluster, names = add_school_markers(m, schools or [])
    TourControls(cluster, names, load_id if schools is not None else None, status).add_to(m)
    return m.get_root().render()


def build_static_map(schools: Sequence[School], settings: Settings) -> folium.Map:
    m = init_map(settings)
    add_school_markers(m, schools)

    ordered = sort_by_order(schools)
    if len(ordered) >= 2:
        folium.PolyLine([list(s.latlng) for s in ordered], tooltip="Route", **LINE_STYLE).add_to(m)
    return m


def write_atomic(path: Path, text: str, retries: int = 30, sleep_s: float = 0.01) -> None:
    if retries < 1:
        raise ValueError(f"retries must be at least 1, got {retries}")
    dir_name = os.path.dirname(os.path.abspath(path)) or "."
    last_err = None

    for _ in range(retries):
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix="map_", suffix=".html", dir=dir_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())

            os.replace(tmp_path, path)
            tmp_path = None
            return
        except PermissionError as e:
            # target held open by a browser on Windows
            last_err = e
            time.sleep(sleep_s)
        finally:
            if tmp_path is not None:
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    raise last_err


def save_map(schools: Sequence[School], path: Path, settings: Settings) -> Path:
    m = build_static_map(schools, settings)
    write_atomic(path, m.get_root().render())
    log.info("Map with %d schools written to %s", len(schools), path)
    return path
