from __future__ import annotations


class RestFunctionError(Exception):
    """Base class for failures that abort a REST call before any network activity."""


class MissingArgumentError(RestFunctionError):
    def __init__(self, expected: int, found: int) -> None:
        super().__init__(f"Expected at least {expected} argument(s), found {found}")
        self.expected = expected
        self.found = found


class InvalidArgumentError(RestFunctionError):
    pass


class UriSyntaxError(RestFunctionError):
    def __init__(self, uri: str, reason: str, index: int) -> None:
        super().__init__(f"{reason} at index {index}: {uri}")
        self.uri = uri
        self.reason = reason
        self.index = index


class BodyFormatError(RestFunctionError):
    def __init__(self, body: str) -> None:
        super().__init__(
            f"POST data '{body}' must be properly formatted JSON.  "
            "Set the 'enforce.json' property to false to disable this check."
        )
        self.body = body


class CredentialError(RestFunctionError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unable to read credential from {path}: {reason}")
        self.path = path


class ResponseDecodeError(ValueError):
    """An allowed, non-empty response body that is not valid JSON."""

    def __init__(self, url: str, cause: Exception) -> None:
        super().__init__(f"Response from {url} is not valid JSON: {cause}")
        self.url = url
