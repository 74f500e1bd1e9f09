from pathlib import Path
import textwrap

import pytest

from domlocator.errors import QueryHandlerRegistrationError
from domlocator.selectors.catalog import load_handler_catalog, register_catalog


def write_catalog(tmp_path: Path, text: str, name: str = "handlers.yaml") -> Path:
    p = tmp_path / name
    p.write_text(textwrap.dedent(text), encoding="utf-8")
    return p


MULTI_DOC = """
    handlers:
      - name: dataTest
        description: match by data-test attribute
        query_one: |
          (node, selector) => node.querySelector(`[data-test="${selector}"]`)
    ---
    handlers:
      - name: byLabel
        query_all: |
          (node, selector) => node.querySelectorAll(`[aria-label="${selector}"]`)
    """


def test_load_multiple_documents(tmp_path: Path):
    specs = load_handler_catalog(write_catalog(tmp_path, MULTI_DOC))
    assert [s.name for s in specs] == ["dataTest", "byLabel"]
    assert specs[0].query_one.startswith("(node, selector)")
    # template literal placeholders are kept verbatim
    assert "${selector}" in specs[0].query_one
    assert specs[0].query_all is None
    assert specs[1].query_one is None


def test_empty_documents_are_skipped(tmp_path: Path):
    specs = load_handler_catalog(write_catalog(tmp_path, "---\n---\nhandlers: []\n"))
    assert specs == []


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_handler_catalog(tmp_path / "nope.yaml")


def test_invalid_name_is_reported_readably(tmp_path: Path):
    p = write_catalog(
        tmp_path,
        """
        handlers:
          - name: data-test
            query_one: "(n, s) => null"
        """,
    )
    with pytest.raises(ValueError) as ei:
        load_handler_catalog(p)
    msg = str(ei.value)
    assert "(document 1)" in msg
    assert "handlers.0.name" in msg


def test_handler_without_scripts_is_rejected(tmp_path: Path):
    p = write_catalog(
        tmp_path,
        """
        handlers:
          - name: empty
            query_one: "   "
        """,
    )
    with pytest.raises(ValueError, match="at least one of query_one/query_all is required"):
        load_handler_catalog(p)


def test_duplicate_names_across_documents(tmp_path: Path):
    p = write_catalog(
        tmp_path,
        """
        handlers:
          - name: same
            query_one: "(n, s) => null"
        ---
        handlers:
          - name: same
            query_all: "(n, s) => []"
        """,
    )
    with pytest.raises(ValueError, match="Duplicate handler 'same'"):
        load_handler_catalog(p)


def test_non_mapping_document(tmp_path: Path):
    with pytest.raises(ValueError, match="must be a mapping"):
        load_handler_catalog(write_catalog(tmp_path, "- just\n- a list\n"))


def test_yaml_syntax_error(tmp_path: Path):
    with pytest.raises(ValueError, match="YAML parse error"):
        load_handler_catalog(write_catalog(tmp_path, "handlers: [unclosed\n"))


def test_register_catalog(tmp_path: Path, registry):
    names = register_catalog(write_catalog(tmp_path, MULTI_DOC), registry)
    assert names == ["dataTest", "byLabel"]
    assert registry.custom_query_handler_names() == ["dataTest", "byLabel"]
    assert registry.get_query_handler_and_selector("byLabel/Close").selector == "Close"
    assert len(registry.injector.amendments) == 2


def test_register_catalog_twice(tmp_path: Path, registry):
    p = write_catalog(tmp_path, MULTI_DOC)
    register_catalog(p, registry)

    with pytest.raises(QueryHandlerRegistrationError):
        register_catalog(p, registry)
    assert register_catalog(p, registry, skip_existing=True) == []
