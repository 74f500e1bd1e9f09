# domlocator/selectors/catalog.py
from __future__ import annotations

"""Custom handler catalogs
--------------------------
Declarative custom query handlers kept in YAML (single or multi-document):

    handlers:
      - name: dataTest
        description: match by data-test attribute
        query_one: |
          (node, selector) => node.querySelector(`[data-test="${selector}"]`)
        query_all: |
          (node, selector) => node.querySelectorAll(`[data-test="${selector}"]`)

Script bodies are taken verbatim; no environment substitution is applied
because JavaScript template literals share the ``${...}`` syntax.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from domlocator.selectors.registry import CustomQuerySelectorRegistry, default_registry
from domlocator.utils.logger import get_logger

log = get_logger(__name__)


# ---------- Models ----------


class HandlerSpec(BaseModel):
    name: str = Field(..., pattern=r"^[a-zA-Z]+$", description="Selector prefix, letters only")
    description: Optional[str] = None
    query_one: Optional[str] = Field(default=None, description="(node, selector) => Node | null")
    query_all: Optional[str] = Field(default=None, description="(node, selector) => Iterable<Node>")

    @field_validator("query_one", "query_all")
    @classmethod
    def _strip_script(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _needs_a_script(self) -> "HandlerSpec":
        if not self.query_one and not self.query_all:
            raise ValueError("at least one of query_one/query_all is required")
        return self


class HandlerCatalog(BaseModel):
    handlers: list[HandlerSpec] = Field(default_factory=list)


# ---------- Public API ----------


def _readable(ve: ValidationError, header: str) -> ValueError:
    lines = [header]
    for e in ve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []))
        msg = e.get("msg", "invalid value")
        lines.append(f"  - {loc}: {msg}")
    return ValueError("\n".join(lines))


def load_handler_catalog(path: Path | str) -> list[HandlerSpec]:
    """Load every handler declared in `path`; names must be unique across documents."""
    cat_path = Path(path)
    if not cat_path.exists():
        raise FileNotFoundError(f"Handler catalog not found: {cat_path}")
    try:
        docs = list(yaml.safe_load_all(cat_path.read_text(encoding="utf-8")))
    except yaml.YAMLError as ye:
        raise ValueError(f"YAML parse error in {cat_path}: {ye}") from ye

    out: list[HandlerSpec] = []
    for idx, data in enumerate(docs, start=1):
        if data is None:
            continue
        if not isinstance(data, dict):
            raise ValueError(f"Document {idx} in {cat_path} must be a mapping/object.")
        try:
            catalog = HandlerCatalog.model_validate(data)
        except ValidationError as ve:
            raise _readable(ve, f"Invalid handler catalog '{cat_path}' (document {idx}):") from ve
        out.extend(catalog.handlers)

    seen: set[str] = set()
    for spec in out:
        if spec.name in seen:
            raise ValueError(f"Duplicate handler '{spec.name}' in {cat_path}")
        seen.add(spec.name)
    return out


def register_catalog(
    path: Path | str,
    registry: Optional[CustomQuerySelectorRegistry] = None,
    *,
    skip_existing: bool = False,
) -> list[str]:
    """
    Register every handler of the catalog and return the registered names.
    With `skip_existing`, names already registered are left alone instead of
    raising QueryHandlerRegistrationError.
    """
    registry = registry or default_registry
    known = set(registry.custom_query_handler_names()) if skip_existing else set()
    names: list[str] = []
    for spec in load_handler_catalog(path):
        if spec.name in known:
            continue
        registry.register_custom_query_handler(spec.name, query_one=spec.query_one, query_all=spec.query_all)
        names.append(spec.name)
    log.info(f"Registered {len(names)} custom handler(s) from {path}")
    return names


__all__ = ["HandlerSpec", "HandlerCatalog", "load_handler_catalog", "register_catalog"]
