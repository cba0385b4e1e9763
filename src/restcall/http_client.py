from __future__ import annotations
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Dict, List, Optional, Tuple, Union

import httpx

from .config import PoolSettings
from .models import HttpResult, RequestDescriptor, TransportFailure

logger = logging.getLogger(__name__)

_ClientKey = Tuple[Optional[str], Optional[Tuple[str, str]]]


class HttpClient:
    """Synchronous, pooled HTTP executor for REST function calls.

    One ``httpx.Client`` serves direct requests and one more is kept per proxy,
    so connections are reused across calls. Safe to share between threads.
    """

    def __init__(
        self,
        pool: Optional[PoolSettings] = None,
        verify_tls: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        pool = pool or PoolSettings()
        self._limits = httpx.Limits(
            max_connections=pool.max_total,
            max_keepalive_connections=pool.max_per_route,
        )
        self._verify = verify_tls
        self._transport = transport
        self._clients: Dict[_ClientKey, httpx.Client] = {}
        self._lock = threading.Lock()
        self._workers = ThreadPoolExecutor(max_workers=pool.max_total, thread_name_prefix="restcall-http")

    def _client_for(self, request: RequestDescriptor) -> httpx.Client:
        key = (request.proxy_url, request.proxy_auth)
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                proxy = None
                if request.proxy_url:
                    proxy = httpx.Proxy(request.proxy_url, auth=request.proxy_auth)
                client = httpx.Client(
                    limits=self._limits,
                    verify=self._verify,
                    proxy=proxy,
                    transport=self._transport,
                    follow_redirects=True,
                    trust_env=False,
                )
                self._clients[key] = client
            return client

    def execute(self, request: RequestDescriptor) -> Union[HttpResult, TransportFailure]:
        """Send ``request`` once, giving up after its timeout.

        The exchange runs on a worker thread so the caller is released at the
        deadline even when the server trickles bytes slowly enough to never
        trip a per-read timeout.
        """
        if request.timeout_ms <= 0:
            return self._timed_out(request)
        timeout_s = request.timeout_ms / 1000.0
        deadline = time.monotonic() + timeout_s
        client = self._client_for(request)
        cancelled = threading.Event()
        logger.debug("HTTP %s %s", request.method, request.url)
        future = self._workers.submit(self._exchange, client, request, timeout_s, deadline, cancelled)
        try:
            outcome = future.result(timeout=timeout_s)
        except FuturesTimeoutError:
            cancelled.set()
            return self._timed_out(request)
        if isinstance(outcome, HttpResult):
            if time.monotonic() > deadline:
                return self._timed_out(request)
            logger.debug("HTTP %s %s -> %d", request.method, request.url, outcome.status_code)
        return outcome

    def _exchange(
        self,
        client: httpx.Client,
        request: RequestDescriptor,
        timeout_s: float,
        deadline: float,
        cancelled: threading.Event,
    ) -> Union[HttpResult, TransportFailure]:
        auth = httpx.BasicAuth(*request.basic_auth) if request.basic_auth else None
        try:
            with client.stream(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
                auth=auth,
                timeout=httpx.Timeout(timeout_s),
            ) as resp:
                chunks: List[bytes] = []
                for chunk in resp.iter_bytes():
                    chunks.append(chunk)
                    if cancelled.is_set() or time.monotonic() > deadline:
                        return self._timed_out(request)
                return HttpResult(
                    url=request.url,
                    status_code=resp.status_code,
                    headers=dict(resp.headers),
                    body=b"".join(chunks),
                    wire_length=resp.num_bytes_downloaded,
                )
        except httpx.TimeoutException:
            return self._timed_out(request)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("HTTP %s %s failed: %s", request.method, request.url, e)
            return TransportFailure(url=request.url, reason=str(e) or type(e).__name__)

    def _timed_out(self, request: RequestDescriptor) -> TransportFailure:
        return TransportFailure(
            url=request.url,
            reason=(
                f"Total REST request time to {request.url} exceeded the configured "
                f"timeout of {request.timeout_ms} ms."
            ),
            timed_out=True,
        )

    def close(self) -> None:
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        self._workers.shutdown(wait=False, cancel_futures=True)
        for client in clients:
            client.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
