# domlocator/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Inspect how selectors are parsed and routed, manage custom handler catalogs,
and run one-off locator actions against a live page.
"""

import json
import sys
from enum import Enum
from pathlib import Path
from typing import List, Optional

import click

from domlocator.core.engine import ACTIONS
from domlocator.errors import DomLocatorError
from domlocator.selectors.catalog import load_handler_catalog, register_catalog
from domlocator.selectors.parser import parse
from domlocator.selectors.registry import default_registry
from domlocator.utils.config import get_settings
from domlocator.utils.logger import bind, get_logger, set_log_level, unbind


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _plain(v):
    if isinstance(v, Path):
        return str(v)
    if isinstance(v, Enum):
        return v.value
    return v


def _resolve_paths(paths: List[str]) -> List[Path]:
    return [Path(p).resolve() for p in paths]


def _find_yaml_files(root: Path, recursive: bool = True) -> list[Path]:
    if recursive:
        return sorted(list(root.rglob("*.yaml")) + list(root.rglob("*.yml")))
    return sorted(list(root.glob("*.yaml")) + list(root.glob("*.yml")))


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.option(
    "--handlers",
    "handlers_file",
    type=click.Path(dir_okay=False, exists=True),
    default=None,
    help="Register custom handlers from this YAML catalog before running the command",
)
@click.version_option(package_name="domlocator")
def cli(log_level: Optional[str], handlers_file: Optional[str]):
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())
    if handlers_file:
        register_catalog(handlers_file, default_registry, skip_existing=True)


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    s = get_settings()
    _echo_json({k: _plain(v) for k, v in s.model_dump().items()})


@cli.command("parse")
@click.argument("selector")
def cmd_parse(selector: str):
    """Show how SELECTOR is parsed (pure CSS or structured AST)."""
    result = parse(selector)
    _echo_json(
        {
            "is_pure_css": result.is_pure_css,
            "has_pseudo_classes": result.has_pseudo_classes,
            "has_aria": result.has_aria,
            "complex_selectors": len(result.selectors),
            "ast": json.loads(result.json) if result.json else None,
        }
    )


@cli.command("resolve")
@click.argument("selector")
def cmd_resolve(selector: str):
    """Show which query handler SELECTOR is routed to."""
    res = default_registry.get_query_handler_and_selector(selector)
    _echo_json(
        {
            "dialect": res.dialect.value,
            "handler": type(res.handler).__name__,
            "selector": res.selector,
            "polling": res.polling.value,
        }
    )


@cli.group("handlers")
def cmd_handlers():
    """Built-in and custom query handlers."""


@cmd_handlers.command("list")
def cmd_handlers_list():
    """List registered query handler prefixes."""
    for name in default_registry.builtin_handler_names():
        click.echo(f" - {name}  (built-in)")
    for name in default_registry.custom_query_handler_names():
        click.echo(f" - {name}  (custom)")


@cmd_handlers.command("validate")
@click.argument("targets", nargs=-1, required=True)
def cmd_handlers_validate(targets: List[str]):
    """Validate handler catalog files or directories of catalogs."""
    paths: list[Path] = []
    for p in _resolve_paths(targets):
        if p.is_dir():
            paths.extend(_find_yaml_files(p, recursive=True))
        else:
            paths.append(p)

    ok = True
    for fp in paths:
        try:
            specs = load_handler_catalog(fp)
            names = ", ".join(spec.name for spec in specs) or "<none>"
            click.echo(f"OK  {fp}  ->  {len(specs)} handler(s): {names}")
        except (ValueError, FileNotFoundError) as e:
            ok = False
            click.echo(f"ERR {fp}  ->  {e}")

    sys.exit(0 if ok else 1)


@cli.command("act")
@click.argument("url")
@click.argument("selector")
@click.option("--action", type=click.Choice(ACTIONS), default="click", show_default=True)
@click.option("--value", type=str, default=None, help="Value for fill, scrollTop for scroll")
@click.option("--timeout", "timeout_ms", type=int, default=None, help="Locator timeout in ms (<= 0: none)")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write JSON logs here")
@click.option("--json-out", is_flag=True, default=False, help="Print the raw result as JSON")
def cmd_act(
    url: str,
    selector: str,
    action: str,
    value: Optional[str],
    timeout_ms: Optional[int],
    log_file: Optional[str],
    json_out: bool,
):
    """
    Open URL and perform ACTION on SELECTOR.

    Examples:
      domlocator act https://example.com "aria/More information..."
      domlocator act https://example.com "input[name=q]" --action fill --value hello
    """
    import asyncio

    from domlocator.core.engine import Engine  # local import so tests can swap the engine

    if action == "fill" and value is None:
        raise click.BadParameter("--value is required for fill", param_hint="--value")

    log = get_logger(__name__)
    bind(selector=selector)
    try:
        eng = Engine(settings=get_settings())
        res = asyncio.run(
            eng.run_action(
                url,
                selector,
                action=action,
                value=value,
                timeout_ms=timeout_ms,
                log_file=Path(log_file) if log_file else None,
            )
        )
    except DomLocatorError as e:
        log.error(f"act failed: {e}")
        res = {"ok": False, "error": str(e), "error_type": e.__class__.__name__}
    finally:
        unbind("selector")

    if json_out:
        _echo_json(res)
    elif res.get("ok"):
        click.echo(f"OK  {action} {selector} ({res.get('elapsed_ms', '-')} ms)")
    else:
        prefix = f"{res.get('error_type')}: " if res.get("error_type") else ""
        click.echo(f"ERR {action} {selector} -> {prefix}{res.get('error', 'unknown error')}")
    sys.exit(0 if res.get("ok") else 1)


def main() -> None:
    cli(prog_name="domlocator")


if __name__ == "__main__":
    main()
