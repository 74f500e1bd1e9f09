import json
import sys
import types
from pathlib import Path
import textwrap

import pytest
from click.testing import CliRunner

from domlocator.cli import cli
from domlocator.selectors.registry import default_registry


@pytest.fixture(autouse=True)
def clean_default_registry():
    default_registry.clear_custom_query_handlers()
    yield
    default_registry.clear_custom_query_handlers()


def write_catalog(tmp_path: Path, name: str = "handlers.yaml") -> Path:
    y = textwrap.dedent(
        """
        handlers:
          - name: dataTest
            query_one: "(node, selector) => node.querySelector(selector)"
        ---
        handlers:
          - name: byLabel
            query_all: "(node, selector) => node.querySelectorAll(selector)"
        """
    )
    p = tmp_path / name
    p.write_text(y, encoding="utf-8")
    return p


def install_fake_engine(monkeypatch, result: dict, calls: list) -> None:
    fake_engine = types.ModuleType("domlocator.core.engine")

    class FakeEngine:
        def __init__(self, settings=None, registry=None):
            self.settings = settings

        async def run_action(self, url, selector, **kwargs):
            calls.append((url, selector, kwargs))
            return dict(result)

    fake_engine.Engine = FakeEngine
    monkeypatch.setitem(sys.modules, "domlocator.core.engine", fake_engine)


def test_cli_parse_deep_selector():
    runner = CliRunner()
    result = runner.invoke(cli, ["parse", "div >>> span"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["is_pure_css"] is False
    assert data["complex_selectors"] == 1
    assert data["ast"] == [[["div"], ">>>", ["span"]]]


def test_cli_parse_plain_css():
    result = CliRunner().invoke(cli, ["parse", "a, b"])
    data = json.loads(result.output)
    assert data["is_pure_css"] is True
    assert data["complex_selectors"] == 2
    assert data["ast"] is None


def test_cli_resolve_aria():
    result = CliRunner().invoke(cli, ["resolve", "aria/Submit"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == {"dialect": "aria", "handler": "AriaQueryHandler", "selector": "Submit", "polling": "raf"}


def test_cli_handlers_list_includes_catalog(tmp_path: Path):
    cat = write_catalog(tmp_path)
    result = CliRunner().invoke(cli, ["--handlers", str(cat), "handlers", "list"])
    assert result.exit_code == 0
    assert " - aria  (built-in)" in result.output
    assert " - dataTest  (custom)" in result.output
    assert " - byLabel  (custom)" in result.output


def test_cli_handlers_validate_dir(tmp_path: Path):
    write_catalog(tmp_path)
    (tmp_path / "broken.yml").write_text("handlers:\n  - name: bad1\n    query_one: x\n", encoding="utf-8")

    result = CliRunner().invoke(cli, ["handlers", "validate", str(tmp_path)])
    assert result.exit_code == 1
    assert "2 handler(s): dataTest, byLabel" in result.output
    assert result.output.count("OK  ") == 1
    assert result.output.count("ERR ") == 1


def test_cli_config_prints_settings():
    result = CliRunner().invoke(cli, ["config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert "LOCATOR_TIMEOUT_MS" in data
    assert data["BROWSER_TYPE"] in ("chromium", "firefox", "webkit")


def test_cli_act_monkeypatch_engine(monkeypatch):
    calls: list = []
    install_fake_engine(monkeypatch, {"ok": True, "elapsed_ms": 5}, calls)

    result = CliRunner().invoke(
        cli,
        ["act", "https://example.com", "input[name=q]", "--action", "fill", "--value", "hello", "--timeout", "2000"],
    )
    assert result.exit_code == 0
    assert "OK  fill input[name=q] (5 ms)" in result.output
    url, selector, kwargs = calls[0]
    assert (url, selector) == ("https://example.com", "input[name=q]")
    assert kwargs["action"] == "fill" and kwargs["value"] == "hello" and kwargs["timeout_ms"] == 2000


def test_cli_act_reports_failure(monkeypatch):
    install_fake_engine(
        monkeypatch,
        {"ok": False, "error": "Timed out after waiting 10ms", "error_type": "LocatorTimeoutError"},
        [],
    )
    result = CliRunner().invoke(cli, ["act", "https://example.com", "aria/Nope"])
    assert result.exit_code == 1
    assert "ERR click aria/Nope -> LocatorTimeoutError: Timed out after waiting 10ms" in result.output


def test_cli_act_fill_requires_value(monkeypatch):
    install_fake_engine(monkeypatch, {"ok": True}, [])
    result = CliRunner().invoke(cli, ["act", "https://example.com", "#q", "--action", "fill"])
    assert result.exit_code == 2
    assert "--value" in result.output
