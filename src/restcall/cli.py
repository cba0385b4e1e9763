from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from .config import pool_settings
from .errors import ResponseDecodeError
from .expression import ParseError, run
from .functions import Context
from .http_client import HttpClient

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_json(text: str, what: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        typer.secho(f"{what} is not valid JSON: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


def _global_config(path: Optional[Path]) -> Dict[str, Any]:
    if path is None:
        return {}
    cfg = _load_json(path.read_text(encoding="utf-8"), str(path))
    if not isinstance(cfg, dict):
        typer.secho(f"{path} must contain a JSON object", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    return cfg


def _pairs(items: List[str], what: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep:
            typer.secho(f"{what} must look like key=value, got {item!r}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=2)
        out[key] = value
    return out


def _evaluate(expression: str, global_config: Dict[str, Any], variables: Dict[str, Any], insecure: bool) -> None:
    console = Console()
    http = HttpClient(pool_settings(global_config), verify_tls=not insecure)
    try:
        context = Context(global_config=global_config, http=http)
        try:
            result = run(expression, context, variables)
        except (ParseError, ResponseDecodeError) as e:
            console.print(str(e), style="bold red", markup=False, highlight=False, soft_wrap=True)
            raise typer.Exit(code=1)
        console.print_json(json.dumps(result))
    finally:
        http.close()


def _literal(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and responses.")) -> None:
    _setup_logging(verbose)


@app.command("get")
def get(
    uri: str = typer.Argument(..., help="Target URI"),
    config: Optional[str] = typer.Option(None, "--config", help="Per-call settings as a JSON object."),
    param: List[str] = typer.Option([], "--param", "-p", help="Query parameter key=value, repeatable."),
    global_config: Optional[Path] = typer.Option(None, "--global-config", exists=True, dir_okay=False),
    insecure: bool = typer.Option(False, "--insecure"),
):
    """Run REST_GET against URI and print the result."""
    variables = {
        "config": _load_json(config, "--config") if config else {},
        "params": _pairs(param, "--param"),
    }
    _evaluate(f"REST_GET({_literal(uri)}, config, params)", _global_config(global_config), variables, insecure)


@app.command("post")
def post(
    uri: str = typer.Argument(..., help="Target URI"),
    body: str = typer.Argument(..., help="Request body, sent as given."),
    config: Optional[str] = typer.Option(None, "--config", help="Per-call settings as a JSON object."),
    param: List[str] = typer.Option([], "--param", "-p", help="Query parameter key=value, repeatable."),
    global_config: Optional[Path] = typer.Option(None, "--global-config", exists=True, dir_okay=False),
    insecure: bool = typer.Option(False, "--insecure"),
):
    """Run REST_POST against URI with BODY and print the result."""
    variables = {
        "body": body,
        "config": _load_json(config, "--config") if config else {},
        "params": _pairs(param, "--param"),
    }
    _evaluate(f"REST_POST({_literal(uri)}, body, config, params)", _global_config(global_config), variables, insecure)


@app.command("eval")
def evaluate(
    expression: str = typer.Argument(..., help="A single REST_GET or REST_POST call."),
    var: List[str] = typer.Option([], "--var", help="Variable name=JSON, repeatable."),
    global_config: Optional[Path] = typer.Option(None, "--global-config", exists=True, dir_okay=False),
    insecure: bool = typer.Option(False, "--insecure"),
):
    """Evaluate EXPRESSION and print the result."""
    variables = {k: _load_json(v, f"--var {k}") for k, v in _pairs(var, "--var").items()}
    _evaluate(expression, _global_config(global_config), variables, insecure)


if __name__ == "__main__":
    app()
