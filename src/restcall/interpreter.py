from __future__ import annotations
import json
import logging
from typing import Any, Optional, Union

from .config import RestSettings
from .errors import ResponseDecodeError
from .models import HttpResult, TransportFailure

logger = logging.getLogger(__name__)


def _content_length(result: HttpResult) -> Optional[int]:
    for name, value in result.headers.items():
        if name.lower() == "content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


def content_length_matches(result: HttpResult) -> bool:
    actual = result.wire_length if result.wire_length is not None else len(result.body)
    return _content_length(result) == actual


def decode_body(result: HttpResult) -> Any:
    try:
        return json.loads(result.body)
    except ValueError as e:
        raise ResponseDecodeError(result.url, e) from e


def interpret(settings: RestSettings, outcome: Union[HttpResult, TransportFailure]) -> Any:
    """Reduce an HTTP outcome to the value returned to the expression.

    Order matters: transport failures always yield ``None``; a disallowed
    status yields the error override; an empty body yields the empty-content
    override; anything else is the decoded JSON body.
    """
    if isinstance(outcome, TransportFailure):
        logger.error("REST request to %s did not complete: %s", outcome.url, outcome.reason)
        return None

    if outcome.status_code not in settings.response_codes_allowed:
        logger.error(
            "REST request to %s expected status code to be one of %s but failed with http status code %d",
            outcome.url,
            sorted(settings.response_codes_allowed),
            outcome.status_code,
        )
        return settings.error_value_override

    if settings.verify_content_length and not content_length_matches(outcome):
        logger.error(
            "REST request to %s returned incorrect or missing content length. "
            "Content length in the response was %s but the actual body content length was %d.",
            outcome.url,
            _content_length(outcome),
            len(outcome.body),
        )
        return settings.error_value_override

    if outcome.is_empty:
        return settings.empty_content_override

    return decode_body(outcome)
