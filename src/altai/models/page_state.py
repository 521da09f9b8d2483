"""Models describing the host page: publish-form state and fallbacks.

These mirror what the host editor exposes to the assistant:

- `publish`: named publish-form modules (`base`, `entry`, ...), each with the
  live field values, blueprint and meta
- `component_tree`: the host's component tree, searched when no publish
  module has values
- `host_config`: control-panel config (`user`, `selectedSite`, `multisiteEnabled`)
- `dom_title` / `dom_blueprint`: values read from the page markup
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


class PublishModule(BaseModel):
    """One publish-form module of the content store."""

    values: dict[str, Any] = Field(default_factory=dict, description="Live field values by handle")
    blueprint: Optional[Any] = Field(default=None, description="Blueprint handle or blueprint object")
    meta: dict[str, Any] = Field(default_factory=dict, description="Form meta (permalink, ...)")
    site: Optional[Any] = None
    locale: Optional[Any] = None
    collection: Optional[str] = None
    is_root: Optional[bool] = None

    model_config = {"frozen": False}


class ComponentNode(BaseModel):
    """A node of the host component tree (fallback lookup for publish data)."""

    name: Optional[str] = None
    data: Optional[PublishModule] = None
    refs: dict[str, ComponentNode] = Field(default_factory=dict)
    children: list[ComponentNode] = Field(default_factory=list)


class PageState(BaseModel):
    """Everything the snapshot builder may read about the current page."""

    path: str = Field(default="/", description="Current URL path")
    publish: Optional[dict[str, PublishModule]] = Field(
        default=None,
        description="Publish modules by name; None when the store isn't available"
    )
    component_tree: Optional[ComponentNode] = None
    host_config: dict[str, Any] = Field(default_factory=dict)
    dom_title: Optional[str] = None
    dom_blueprint: Optional[str] = None

    model_config = {"frozen": False}

    @classmethod
    def load(cls, path: Path) -> "PageState":
        """Load a page state from a JSON file (used by the CLI)."""
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def dump(self, path: Path) -> None:
        """Write the page state back to a JSON file."""
        path.write_text(self.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")


ComponentNode.model_rebuild()
