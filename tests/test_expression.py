import pytest

from restcall.expression import ParseError, parse_call, run


def test_parse_literals_and_variables():
    name, args = parse_call(
        "REST_POST('http://h/p', {\"a\": [1, 2]}, cfg, true, null, -1.5, 'it\\'s')",
        {"cfg": {"timeout": 5}},
    )
    assert name == "REST_POST"
    assert args == ["http://h/p", {"a": [1, 2]}, {"timeout": 5}, True, None, -1.5, "it's"]


def test_unknown_variable_is_none():
    assert parse_call("REST_GET(missing)") == ("REST_GET", [None])


def test_no_arguments():
    assert parse_call("  REST_GET ( ) ") == ("REST_GET", [])


@pytest.mark.parametrize(
    "expression, cause",
    [
        ("REST_GET('http://h/p'", "Expected ')'"),
        ("REST_GET('http://h/p) ", "Unterminated string literal"),
        ("REST_GET(1) trailing", "Unexpected input"),
        ("REST_GET({bad})", "Invalid literal"),
        ("NOPE('x')", "Unknown function NOPE"),
    ],
)
def test_syntax_errors_use_the_wrapped_message(context, expression, cause):
    with pytest.raises(ParseError) as exc:
        run(expression, context)
    message = str(exc.value)
    assert message.startswith(f"Unable to parse {expression}: Unable to parse: {expression} due to: ")
    assert cause in message
