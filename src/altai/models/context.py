"""ContextSnapshot model: a point-in-time read of the entry being edited."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


PageType = Literal["collection_entry", "taxonomy_term", "global", "asset", "navigation", "other"]


class CurrentUser(BaseModel):
    """The signed-in control-panel user."""

    name: Optional[str] = None
    email: Optional[str] = None
    id: Optional[Any] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown"


class ContextSnapshot(BaseModel):
    """
    Normalized snapshot of the current editing context.

    Built fresh for every message sent; never cached beyond one
    request/response cycle. Keys of `fields` and `field_labels` are the
    field-handle vocabulary shown to the model and matched by the
    reconciler.

    On the wire (the `context` object of a /chat request) the snapshot uses
    snake_case keys and `global` instead of `global_set`; see `to_context()`.
    """

    route: str = Field(default="", description="Control-panel URL path")
    page_type: Optional[PageType] = Field(default=None, description="Page classification from the route")

    collection: Optional[str] = None
    blueprint: Optional[str] = None
    taxonomy: Optional[str] = None
    global_set: Optional[str] = Field(default=None, alias="global")

    title: Optional[Any] = None
    slug: Optional[Any] = None
    status: Optional[str] = None
    entry_id: Optional[str] = None
    permalink: Optional[Any] = None
    is_new: Optional[bool] = None
    has_changes: Optional[bool] = None
    is_root: Optional[bool] = None

    date: Optional[Any] = None
    created_at: Optional[Any] = None
    updated_at: Optional[Any] = None

    categories: Optional[list[Any]] = None
    tags: Optional[list[Any]] = None
    featured: Optional[bool] = None
    author: Optional[Any] = None
    parent: Optional[Any] = None

    current_user: Optional[CurrentUser] = None
    site: Optional[Any] = None
    locale: Optional[Any] = None
    multisite: Optional[bool] = None

    field_labels: dict[str, str] = Field(
        default_factory=dict,
        description="Field handle -> human display label"
    )
    fields: dict[str, Any] = Field(
        default_factory=dict,
        description="Field handle -> formatted value (system fields and empty values excluded)"
    )

    model_config = {"populate_by_name": True, "extra": "ignore"}

    def to_context(self) -> dict[str, Any]:
        """Render as the wire `context` mapping (unset values omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_context(cls, context: Optional[dict[str, Any]]) -> Optional["ContextSnapshot"]:
        """Build a snapshot from a wire `context` mapping; empty/None gives None."""
        if not context:
            return None
        return cls.model_validate(context)
