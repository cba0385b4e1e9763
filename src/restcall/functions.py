from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from .config import pool_settings, resolve_settings
from .errors import InvalidArgumentError, MissingArgumentError
from .http_client import HttpClient
from .interpreter import interpret
from .models import CallKind
from .request_builder import build_request


@dataclass
class Context:
    """What a running expression supplies to the REST functions.

    ``global_config`` is only read, never modified. When no client is given,
    one is created from the pool settings in ``global_config``.
    """

    global_config: Mapping[str, Any] = field(default_factory=dict)
    http: Optional[HttpClient] = None

    def __post_init__(self) -> None:
        if self.http is None:
            self.http = HttpClient(pool_settings(self.global_config))


def _call(
    context: Context,
    kind: CallKind,
    uri: str,
    config: Optional[Mapping[str, Any]],
    query_parameters: Optional[Mapping[str, Any]],
    body: Any = None,
) -> Any:
    settings = resolve_settings(context.global_config, kind, config)
    request = build_request(settings, kind, uri, query_parameters, body)
    return interpret(settings, context.http.execute(request))


def rest_get(
    context: Context,
    uri: str,
    config: Optional[Mapping[str, Any]] = None,
    query_parameters: Optional[Mapping[str, Any]] = None,
) -> Any:
    """GET ``uri`` and return the JSON response, an override, or ``None``."""
    return _call(context, CallKind.GET, uri, config, query_parameters)


def rest_post(
    context: Context,
    uri: str,
    body: Any,
    config: Optional[Mapping[str, Any]] = None,
    query_parameters: Optional[Mapping[str, Any]] = None,
) -> Any:
    """POST ``body`` as JSON to ``uri`` and return the JSON response, an override, or ``None``."""
    return _call(context, CallKind.POST, uri, config, query_parameters, body)


def _require(args: Sequence[Any], count: int) -> None:
    if len(args) < count:
        raise MissingArgumentError(count, len(args))


def _uri_arg(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"Expected a URI string, found {type(value).__name__}")
    return value


def _map_arg(args: Sequence[Any], index: int, what: str) -> Optional[Mapping[str, Any]]:
    if len(args) <= index or args[index] is None:
        return None
    value = args[index]
    if not isinstance(value, Mapping):
        raise InvalidArgumentError(f"Expected {what} to be a map, found {type(value).__name__}")
    return value


class RestGet:
    """REST_GET(uri, config?, queryParameters?)"""

    name = "REST_GET"

    def apply(self, args: Sequence[Any], context: Context) -> Any:
        _require(args, 1)
        return rest_get(
            context,
            _uri_arg(args[0]),
            _map_arg(args, 1, "config"),
            _map_arg(args, 2, "query parameters"),
        )


class RestPost:
    """REST_POST(uri, body, config?, queryParameters?)"""

    name = "REST_POST"

    def apply(self, args: Sequence[Any], context: Context) -> Any:
        _require(args, 2)
        return rest_post(
            context,
            _uri_arg(args[0]),
            args[1],
            _map_arg(args, 2, "config"),
            _map_arg(args, 3, "query parameters"),
        )


FUNCTIONS: Dict[str, Any] = {f.name: f for f in (RestGet(), RestPost())}
