from __future__ import annotations
import json
import threading
import time
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from restcall.functions import Context
from restcall.http_client import HttpClient

BASE_URI = "http://localhost:1080"

Responder = Callable[[httpx.Request], httpx.Response]


@dataclass
class MockServer:
    """In-process stand-in for the remote REST endpoint.

    Unmatched requests get an empty 404, like a real mock server would.
    """

    routes: Dict[Tuple[str, str], Responder] = field(default_factory=dict)
    requests: List[httpx.Request] = field(default_factory=list)
    delay_s: float = 0.0

    def when(self, method: str, path: str, status: int = 200, body: bytes = b"", **kwargs) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status, content=body, **kwargs)

    def respond_with(self, method: str, path: str, responder: Responder) -> None:
        self.routes[(method, path)] = responder

    def handle(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.delay_s:
            time.sleep(self.delay_s)
        responder = self.routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404)
        return responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def _post_handler(request: httpx.Request) -> httpx.Response:
    if request.content == b'{"key":"value"}':
        return httpx.Response(200, content=b'{"post":"success"}')
    return httpx.Response(404)


@pytest.fixture
def server() -> MockServer:
    s = MockServer()
    s.when("GET", "/get", body=b'{"get":"success"}')
    s.when("GET", "/get/empty", status=404)
    s.respond_with("POST", "/post", _post_handler)
    s.when("POST", "/post/empty", status=404)
    return s


@pytest.fixture
def http(server: MockServer):
    client = HttpClient(transport=server.transport)
    yield client
    client.close()


@pytest.fixture
def context(http: HttpClient) -> Context:
    return Context(global_config={}, http=http)


@pytest.fixture
def password_files(tmp_path):
    basic = tmp_path / "basicAuth.txt"
    basic.write_text("password", encoding="utf-8")
    proxy = tmp_path / "proxyBasicAuth.txt"
    proxy.write_text("proxyPassword", encoding="utf-8")
    return str(basic), str(proxy)


class LocalServer(ThreadingHTTPServer):
    """Real socket server on 127.0.0.1 for behavior a mock transport can't show."""

    daemon_threads = True

    def __init__(self, handler) -> None:
        super().__init__(("127.0.0.1", 0), handler)
        self.stop = threading.Event()
        self.seen: List[Tuple[str, Optional[str]]] = []

    @property
    def port(self) -> int:
        return self.server_address[1]

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"


class _QuietHandler(BaseHTTPRequestHandler):
    server: LocalServer  # type: ignore[assignment]

    def log_message(self, format: str, *args) -> None:
        pass


class _TrickleHandler(_QuietHandler):
    """Sends a status line, then one header byte every 50 ms for about two seconds."""

    def do_GET(self) -> None:
        try:
            self.wfile.write(b"HTTP/1.1 200 OK\r\nX-Slow: ")
            for _ in range(40):
                if self.server.stop.wait(0.05):
                    return
                self.wfile.write(b"a")
        except (BrokenPipeError, ConnectionResetError):
            return


class _ProxyHandler(_QuietHandler):
    """Forward proxy that records each request line and answers for the origin."""

    def do_GET(self) -> None:
        self.server.seen.append((self.requestline, self.headers.get("Proxy-Authorization")))
        body = json.dumps({"proxyGet": "success"}).encode()
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def _serve(handler):
    server = LocalServer(handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.stop.set()
        server.shutdown()
        server.server_close()
        thread.join()


@pytest.fixture
def trickle_server():
    yield from _serve(_TrickleHandler)


@pytest.fixture
def proxy_server():
    yield from _serve(_ProxyHandler)
