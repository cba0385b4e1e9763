import pytest

from restcall.errors import UriSyntaxError
from restcall.util import add_query_parameters, validate_uri


@pytest.mark.parametrize(
    "uri",
    [
        "http://localhost:8080/get",
        "https://example.com/a/b?key=value&x=1#frag",
        "http://[::1]:80/x",
        "http://host/caf%C3%A9",
        "http://host/café",
        "/relative/path",
        "mailto:someone@example.com",
        "",
    ],
)
def test_validate_uri_accepts_well_formed(uri):
    assert validate_uri(uri) == uri


@pytest.mark.parametrize(
    "uri, message",
    [
        ("some invalid uri", "Illegal character in path at index 4: some invalid uri"),
        ("http://exa mple.com/", "Illegal character in authority at index 10: http://exa mple.com/"),
        ("http://host/a b", "Illegal character in path at index 13: http://host/a b"),
        ("http://host/?q=a b", "Illegal character in query at index 16: http://host/?q=a b"),
        ("http://host/#a b", "Illegal character in fragment at index 14: http://host/#a b"),
        ("http://host/%zz", "Malformed escape pair at index 12: http://host/%zz"),
        ("://host", "Expected scheme name at index 0: ://host"),
        ("1http://host", "Illegal character in scheme name at index 0: 1http://host"),
        ("ht_tp://host", "Illegal character in scheme name at index 2: ht_tp://host"),
        ("http:", "Expected scheme-specific part at index 5: http:"),
        ("http://", "Expected authority at index 7: http://"),
        ("http://host/{id}", "Illegal character in path at index 12: http://host/{id}"),
    ],
)
def test_validate_uri_reports_position(uri, message):
    with pytest.raises(UriSyntaxError) as exc:
        validate_uri(uri)
    assert str(exc.value) == message


def test_add_query_parameters_without_existing_query():
    assert add_query_parameters("http://h/p", {"key": "value"}) == "http://h/p?key=value"


def test_add_query_parameters_keeps_existing_query_and_fragment():
    url = add_query_parameters("http://h/p?a=1&a=2#frag", {"key": "value"})
    assert url == "http://h/p?a=1&a=2&key=value#frag"


def test_add_query_parameters_encodes_values():
    url = add_query_parameters("http://h/p?", {"q": "a b&c", "flag": True, "n": 3, "none": None})
    assert url == "http://h/p?q=a+b%26c&flag=true&n=3&none="


def test_add_query_parameters_noop_when_empty():
    assert add_query_parameters("http://h/p", {}) == "http://h/p"
    assert add_query_parameters("http://h/p", None) == "http://h/p"
