"""Live web map of Iridium ring alerts and satellites.

A small HTTP server with Server-Sent Events pushes the map state to a
browser page about once a second.

Endpoints:
    GET /              the map page (also /index.html)
    GET /api/events    SSE stream of ``update`` events carrying JSON
    GET /api/state     the current state as one JSON document
"""

from __future__ import annotations

import logging
import socket
import socketserver
import threading
from collections import deque
from dataclasses import dataclass

log = logging.getLogger(__name__)

MAX_RA_POINTS = 2000
MAX_SATELLITES = 100
MAX_RA_OUT = 500
JSON_BUF_SIZE = 65536
HTTP_BUF_SIZE = 4096
DEFAULT_PORT = 8888

_SSE_PREFIX = b"event: update\ndata: "
_SSE_SUFFIX = b"\n\n"

LEAFLET_BASE = "https://unpkg.com/leaflet@1.9.4/dist"
TILE_URL = "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png"


@dataclass(frozen=True)
class RingAlertPoint:
    """One ring alert placed on the map."""

    lat: float
    lon: float
    alt: int
    sat_id: int
    beam_id: int
    n_pages: int
    tmsi: int
    frequency: float
    timestamp: int

    def to_json(self) -> str:
        return (
            f'{{"lat":{self.lat:.4f},"lon":{self.lon:.4f},"alt":{self.alt},'
            f'"sat":{self.sat_id},"beam":{self.beam_id},"pages":{self.n_pages},'
            f'"tmsi":{self.tmsi},"freq":{self.frequency:.0f}}}'
        )


@dataclass
class SatelliteEntry:
    """A satellite seen in broadcast frames."""

    sat_id: int
    beam_id: int = 0
    last_seen: int = 0
    count: int = 0

    def to_json(self) -> str:
        return f'{{"id":{self.sat_id},"beam":{self.beam_id},"count":{self.count}}}'


class MapState:
    """Thread-safe collection of recent ring alerts and known satellites."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ra: deque[RingAlertPoint] = deque(maxlen=MAX_RA_POINTS)
        self._sats: dict[int, SatelliteEntry] = {}
        self._total_ira = 0
        self._total_ibc = 0

    @property
    def total_ira(self) -> int:
        with self._lock:
            return self._total_ira

    @property
    def total_ibc(self) -> int:
        with self._lock:
            return self._total_ibc

    @property
    def ring_alerts(self) -> list[RingAlertPoint]:
        """Stored ring alerts, most recent first."""
        with self._lock:
            return list(reversed(self._ra))

    @property
    def satellites(self) -> list[SatelliteEntry]:
        """Known satellites in the order they were first seen."""
        with self._lock:
            return [
                SatelliteEntry(s.sat_id, s.beam_id, s.last_seen, s.count)
                for s in self._sats.values()
            ]

    def add_ra(
        self, lat, lon, alt, sat_id, beam_id, n_pages, tmsi, timestamp, frequency
    ) -> bool:
        """Record a ring alert; return False if its position was rejected."""
        if lat < -90 or lat > 90 or lon < -180 or lon > 180:
            return False
        if sat_id == 0 and beam_id == 0 and lat == 0 and lon == 0:
            return False
        point = RingAlertPoint(
            lat=float(lat),
            lon=float(lon),
            alt=int(alt),
            sat_id=int(sat_id),
            beam_id=int(beam_id),
            n_pages=int(n_pages),
            tmsi=(int(tmsi) & 0xFFFFFFFF) if n_pages > 0 else 0,
            frequency=float(frequency),
            timestamp=int(timestamp),
        )
        with self._lock:
            self._ra.append(point)
            self._total_ira += 1
        return True

    def add_sat(self, sat_id, beam_id, timestamp) -> None:
        """Record a broadcast frame from ``sat_id``; satellite 0 is ignored."""
        if sat_id == 0:
            return
        with self._lock:
            entry = self._sats.get(sat_id)
            if entry is None and len(self._sats) < MAX_SATELLITES:
                entry = self._sats[sat_id] = SatelliteEntry(sat_id=int(sat_id))
            if entry is not None:
                entry.beam_id = int(beam_id)
                entry.last_seen = int(timestamp)
                entry.count += 1
            self._total_ibc += 1

    def to_json(self) -> str:
        """Serialise the state as compact JSON, newest ring alerts first."""
        return self._render(JSON_BUF_SIZE)

    def _render(self, limit: int) -> str:
        with self._lock:
            parts = [
                f'{{"total_ira":{self._total_ira},"total_ibc":{self._total_ibc},"ra":['
            ]
            length = len(parts[0])
            for i, point in enumerate(reversed(self._ra)):
                if i >= MAX_RA_OUT:
                    break
                item = ("," if i else "") + point.to_json()
                parts.append(item)
                length += len(item)
                if length >= limit - 256:
                    break
            parts.append('],"sats":[')
            parts.append(",".join(s.to_json() for s in self._sats.values()))
            parts.append("]}")
        return "".join(parts)


def _http_response(status: str, content_type: str, body: bytes) -> bytes:
    header = (
        f"HTTP/1.1 {status}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "Access-Control-Allow-Origin: *\r\n"
        "\r\n"
    )
    return header.encode("ascii") + body


_SSE_HEADER = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/event-stream\r\n"
    b"Cache-Control: no-cache\r\n"
    b"Connection: keep-alive\r\n"
    b"X-Accel-Buffering: no\r\n"
    b"Access-Control-Allow-Origin: *\r\n"
    b"\r\n"
)


_PAGE = """<!DOCTYPE html>
<html><head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>iridium sniffer map</title>
<link rel="stylesheet" href="@LEAFLET@/leaflet.css">
<script src="@LEAFLET@/leaflet.js"></script>
<style>
*{margin:0;padding:0;box-sizing:border-box}
body{font-family:system-ui,sans-serif;background:#101828}
#bar{height:42px;display:flex;align-items:center;gap:18px;padding:0 14px;
 background:#1d2939;color:#e4e7ec;font-size:13px;border-bottom:1px solid #344054}
#bar b{color:#f9fafb}
.num{color:#53b1fd;font-weight:600}
#status{margin-left:auto;font-size:12px;color:#667085}
#map{width:100vw;height:calc(100vh - 42px)}
.leaflet-container{background:#101828}
.key{position:absolute;right:10px;bottom:26px;z-index:1000;padding:8px 12px;
 background:rgba(16,24,40,0.9);color:#e4e7ec;font-size:12px;line-height:2;
 border:1px solid #344054;border-radius:6px}
.dot{display:inline-block;border-radius:50%;margin-right:6px;vertical-align:middle}
.page{color:#d92d20;font-weight:600}
</style></head><body>
<div id="bar">
 <b>iridium sniffer</b>
 <span>Ring Alerts <span id="n-ira" class="num">0</span></span>
 <span>Broadcasts <span id="n-ibc" class="num">0</span></span>
 <span>Satellites <span id="n-sats" class="num">0</span></span>
 <span id="status">connecting...</span>
</div>
<div id="map"></div>
<div class="key">
 <div><span class="dot" style="width:10px;height:10px;background:#2e90fa"></span>Satellite position</div>
 <div><span class="dot" style="width:12px;height:12px;background:#f04438;border:2px solid #fdb022"></span>Paging event (TMSI)</div>
</div>
<script>
var map=L.map('map').setView([20,0],2);
L.tileLayer('@TILES@',{attribution:'map tiles',maxZoom:18,subdomains:'abcd'}).addTo(map);
var palette=['#2e90fa','#06aed4','#12b76a','#9e77ed','#ee46bc','#fb6514',
 '#fac515','#66c61c','#6172f3','#f97066','#15b79e','#b692f6','#36bffa','#fd6f8e','#a6ef67'];
var sats=L.layerGroup().addTo(map), pages=L.layerGroup().addTo(map), centered=false;
function setStatus(text,color){var s=document.getElementById('status');s.textContent=text;s.style.color=color;}
function hex8(v){return ('00000000'+v.toString(16)).slice(-8);}
function update(d){
 document.getElementById('n-ira').textContent=d.total_ira;
 document.getElementById('n-ibc').textContent=d.total_ibc;
 document.getElementById('n-sats').textContent=d.sats.length;
 setStatus('live','#17b26a');
 sats.clearLayers();pages.clearLayers();
 d.ra.forEach(function(p){
  var paging=p.pages>0&&p.tmsi!==0, c=palette[p.sat%palette.length];
  var m=paging
   ?L.circleMarker([p.lat,p.lon],{radius:8,color:'#fdb022',fillColor:'#f04438',fillOpacity:0.85,weight:2.5})
   :L.circleMarker([p.lat,p.lon],{radius:4,color:c,fillColor:c,fillOpacity:0.5,weight:1});
  var html='<b>'+(paging?'Paging Event':'Satellite Position')+'</b><br>'
   +'Satellite: '+p.sat+'<br>Beam: '+p.beam+'<br>'
   +'Position: '+p.lat.toFixed(2)+', '+p.lon.toFixed(2)+'<br>'
   +'Altitude: '+p.alt+' km<br>Frequency: '+(p.freq/1e6).toFixed(3)+' MHz';
  if(paging){html+='<br><span class="page">TMSI: 0x'+hex8(p.tmsi)+'</span>';}
  m.bindPopup(html);
  m.addTo(paging?pages:sats);
 });
 if(!centered&&d.ra.length>0){map.setView([d.ra[0].lat,d.ra[0].lon],3);centered=true;}
}
function connect(){
 var es=new EventSource('/api/events');
 es.addEventListener('update',function(e){try{update(JSON.parse(e.data));}catch(err){}});
 es.onerror=function(){setStatus('reconnecting...','#f04438');es.close();setTimeout(connect,2000);};
}
connect();
</script></body></html>
"""


def render_page(leaflet_base: str = LEAFLET_BASE, tile_url: str = TILE_URL) -> str:
    """Return the map page using the given Leaflet asset base and tile URL."""
    return _PAGE.replace("@LEAFLET@", leaflet_base).replace("@TILES@", tile_url)


class _Handler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        sock: socket.socket = self.request
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            data = sock.recv(HTTP_BUF_SIZE - 1)
        except OSError:
            return
        if not data:
            return
        try:
            self.server.owner._dispatch(sock, data)
        except OSError:
            pass


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True
    request_queue_size = 16

    def __init__(self, address, owner: WebMapServer) -> None:
        self.owner = owner
        super().__init__(address, _Handler)


class WebMapServer:
    """HTTP/SSE server publishing a :class:`MapState` to browsers."""

    def __init__(
        self,
        state: MapState | None = None,
        port: int = DEFAULT_PORT,
        host: str = "0.0.0.0",
        interval: float = 1.0,
        page: str | None = None,
    ) -> None:
        self.state = state if state is not None else MapState()
        self.host = host
        self.interval = interval
        self._requested_port = port
        self._page = (page if page is not None else render_page()).encode("utf-8")
        self._server: _TCPServer | None = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        """The bound port once started, otherwise the requested one."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._requested_port

    def __enter__(self) -> WebMapServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def start(self) -> None:
        """Bind, listen and serve from a background thread.

        Raises :class:`OSError` if the socket cannot be set up and
        :class:`RuntimeError` if the server is already running.
        """
        if self._server is not None:
            raise RuntimeError("web map server already running")
        self._stop.clear()
        self._server = _TCPServer((self.host, self._requested_port), self)
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="web-map", daemon=True
        )
        self._thread.start()
        log.info("Web map: http://localhost:%d/", self.port)

    def shutdown(self) -> None:
        """Stop serving and close the listening socket; safe to repeat."""
        if self._server is None:
            return
        self._stop.set()
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join()
        self._server = None
        self._thread = None

    def _dispatch(self, sock: socket.socket, data: bytes) -> None:
        if not data.startswith(b"GET "):
            sock.sendall(_http_response("405 Method Not Allowed", "text/plain", b"405"))
            return
        path = data[4:].split(b" ", 1)[0].split(b"\0", 1)[0]
        if path in (b"/", b"/index.html"):
            sock.sendall(_http_response("200 OK", "text/html", self._page))
        elif path == b"/api/events":
            self._stream_events(sock)
        elif path == b"/api/state":
            body = self.state._render(JSON_BUF_SIZE).encode("ascii")
            sock.sendall(_http_response("200 OK", "application/json", body))
        else:
            sock.sendall(_http_response("404 Not Found", "text/plain", b"404"))

    def _stream_events(self, sock: socket.socket) -> None:
        sock.sendall(_SSE_HEADER)
        while not self._stop.wait(self.interval):
            body = self.state._render(JSON_BUF_SIZE - 64).encode("ascii")
            try:
                sock.sendall(_SSE_PREFIX + body + _SSE_SUFFIX)
            except OSError:
                break