from __future__ import annotations
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import CallKind

logger = logging.getLogger(__name__)

# Global config sub-maps
REST_SETTINGS = "stellar.rest.settings"
REST_GET_SETTINGS = "stellar.rest.get.settings"
REST_POST_SETTINGS = "stellar.rest.post.settings"

# Per-call keys, valid in any settings layer
BASIC_AUTH_USER = "basic.auth.user"
BASIC_AUTH_PASSWORD_PATH = "basic.auth.password.path"
PROXY_HOST = "proxy.host"
PROXY_PORT = "proxy.port"
PROXY_BASIC_AUTH_USER = "proxy.basic.auth.user"
PROXY_BASIC_AUTH_PASSWORD_PATH = "proxy.basic.auth.password.path"
TIMEOUT = "timeout"
RESPONSE_CODES_ALLOWED = "response.codes.allowed"
EMPTY_CONTENT_OVERRIDE = "empty.content.override"
ERROR_VALUE_OVERRIDE = "error.value.override"
VERIFY_CONTENT_LENGTH = "verify.content.length"
ENFORCE_JSON = "enforce.json"
HEADERS = "headers"

# Client-wide keys, read from the general layer only
POOLING_MAX_TOTAL = "pooling.max.total"
POOLING_DEFAULT_MAX_PER_ROUTE = "pooling.default.max.per.route"

KIND_SETTINGS = {
    CallKind.GET: REST_GET_SETTINGS,
    CallKind.POST: REST_POST_SETTINGS,
}


@dataclass(frozen=True)
class RestSettings:
    """Effective settings for a single REST call."""

    response_codes_allowed: FrozenSet[int] = frozenset({200})
    empty_content_override: Any = None
    error_value_override: Any = None
    timeout: int = 1000
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_basic_auth_user: Optional[str] = None
    proxy_basic_auth_password_path: Optional[str] = None
    basic_auth_user: Optional[str] = None
    basic_auth_password_path: Optional[str] = None
    verify_content_length: bool = False
    enforce_json: bool = True
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def uses_proxy(self) -> bool:
        return bool(self.proxy_host) and self.proxy_port is not None


@dataclass(frozen=True)
class PoolSettings:
    """Connection pool limits shared by every call made through one client."""

    max_total: int = 200
    max_per_route: int = 50


class ConfigLayer(BaseModel):
    """Typed view of one settings layer. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    response_codes_allowed: Optional[List[int]] = Field(default=None, alias=RESPONSE_CODES_ALLOWED)
    empty_content_override: Any = Field(default=None, alias=EMPTY_CONTENT_OVERRIDE)
    error_value_override: Any = Field(default=None, alias=ERROR_VALUE_OVERRIDE)
    timeout: Optional[int] = Field(default=None, alias=TIMEOUT, gt=0)
    proxy_host: Optional[str] = Field(default=None, alias=PROXY_HOST)
    proxy_port: Optional[int] = Field(default=None, alias=PROXY_PORT)
    proxy_basic_auth_user: Optional[str] = Field(default=None, alias=PROXY_BASIC_AUTH_USER)
    proxy_basic_auth_password_path: Optional[str] = Field(default=None, alias=PROXY_BASIC_AUTH_PASSWORD_PATH)
    basic_auth_user: Optional[str] = Field(default=None, alias=BASIC_AUTH_USER)
    basic_auth_password_path: Optional[str] = Field(default=None, alias=BASIC_AUTH_PASSWORD_PATH)
    verify_content_length: Optional[bool] = Field(default=None, alias=VERIFY_CONTENT_LENGTH)
    enforce_json: Optional[bool] = Field(default=None, alias=ENFORCE_JSON)
    headers: Optional[Dict[str, str]] = Field(default=None, alias=HEADERS)
    pooling_max_total: Optional[int] = Field(default=None, alias=POOLING_MAX_TOTAL)
    pooling_default_max_per_route: Optional[int] = Field(default=None, alias=POOLING_DEFAULT_MAX_PER_ROUTE)

    @classmethod
    def parse_layer(cls, raw: Optional[Mapping[str, Any]], source: str) -> Dict[str, Any]:
        """Return only the keys this layer explicitly sets to a value, by field name.

        A key whose value cannot be coerced to its field type is dropped and
        logged; the rest of the layer still applies.
        """
        if not raw:
            return {}
        data = dict(raw)
        while True:
            try:
                layer = cls.model_validate(data)
                dumped = layer.model_dump(exclude_unset=True)
                return {k: v for k, v in dumped.items() if v is not None}
            except ValidationError as ve:
                bad = {str(e["loc"][0]) for e in ve.errors() if e.get("loc")}
                bad &= set(data)
                if not bad:
                    raise
                for key in sorted(bad):
                    logger.warning("Ignoring invalid value %r for %s in %s", data[key], key, source)
                    data.pop(key)


_SETTINGS_FIELDS = frozenset(RestSettings.__dataclass_fields__)


def _sub_map(global_config: Optional[Mapping[str, Any]], key: str) -> Optional[Mapping[str, Any]]:
    if not global_config:
        return None
    value = global_config.get(key)
    return value if isinstance(value, Mapping) else None


def resolve_settings(
    global_config: Optional[Mapping[str, Any]],
    kind: CallKind,
    call_config: Optional[Mapping[str, Any]] = None,
) -> RestSettings:
    """Merge defaults, general, call-kind and per-call settings, per key.

    Later layers win for the keys they set; keys they leave out fall through
    to the layers below.
    """
    layers = [
        (REST_SETTINGS, _sub_map(global_config, REST_SETTINGS)),
        (KIND_SETTINGS[kind], _sub_map(global_config, KIND_SETTINGS[kind])),
        ("call config", call_config),
    ]
    merged: Dict[str, Any] = {}
    for source, raw in layers:
        merged.update(ConfigLayer.parse_layer(raw, source))

    values = {k: v for k, v in merged.items() if k in _SETTINGS_FIELDS}
    if "response_codes_allowed" in values:
        values["response_codes_allowed"] = frozenset(values["response_codes_allowed"])
    return RestSettings(**values)


def pool_settings(global_config: Optional[Mapping[str, Any]]) -> PoolSettings:
    layer = ConfigLayer.parse_layer(_sub_map(global_config, REST_SETTINGS), REST_SETTINGS)
    values = {}
    if layer.get("pooling_max_total") is not None:
        values["max_total"] = layer["pooling_max_total"]
    if layer.get("pooling_default_max_per_route") is not None:
        values["max_per_route"] = layer["pooling_default_max_per_route"]
    return PoolSettings(**values)
