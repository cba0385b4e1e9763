from __future__ import annotations
import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from .config import RestSettings
from .credentials import read_password
from .errors import BodyFormatError
from .models import CallKind, RequestDescriptor
from .util import add_query_parameters, validate_uri

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def _credentials(user: Optional[str], password_path: Optional[str]) -> Optional[Tuple[str, str]]:
    if user and password_path:
        return user, read_password(password_path)
    return None


def encode_body(body: Any, enforce_json: bool) -> Optional[bytes]:
    """Serialize a POST body.

    Strings are sent verbatim, after a JSON syntax check when ``enforce_json``
    is set. Any other value is serialized to JSON.
    """
    if body is None:
        return None
    if isinstance(body, str):
        if enforce_json:
            try:
                json.loads(body)
            except ValueError as e:
                raise BodyFormatError(body) from e
        return body.encode("utf-8")
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


def build_headers(settings: RestSettings, kind: CallKind) -> Dict[str, str]:
    headers = {"Accept": JSON_CONTENT_TYPE}
    if kind == CallKind.POST:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    headers.update(settings.headers)
    return headers


def build_request(
    settings: RestSettings,
    kind: CallKind,
    uri: str,
    query_parameters: Optional[Mapping[str, Any]] = None,
    body: Any = None,
) -> RequestDescriptor:
    """Turn effective settings and call arguments into a request descriptor.

    Raises ``UriSyntaxError``, ``BodyFormatError`` or ``CredentialError``;
    nothing touches the network here.
    """
    validate_uri(uri)
    url = add_query_parameters(uri, query_parameters)
    payload = encode_body(body, settings.enforce_json) if kind == CallKind.POST else None

    proxy_url = None
    proxy_auth = None
    if settings.uses_proxy:
        proxy_url = f"http://{settings.proxy_host}:{settings.proxy_port}"
        proxy_auth = _credentials(settings.proxy_basic_auth_user, settings.proxy_basic_auth_password_path)

    request = RequestDescriptor(
        method="POST" if kind == CallKind.POST else "GET",
        url=url,
        headers=build_headers(settings, kind),
        body=payload,
        proxy_url=proxy_url,
        proxy_auth=proxy_auth,
        basic_auth=_credentials(settings.basic_auth_user, settings.basic_auth_password_path),
        timeout_ms=settings.timeout,
    )
    logger.debug("Built %s %s (proxy=%s)", request.method, request.url, proxy_url)
    return request
