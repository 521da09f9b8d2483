"""Context snapshot builder.

Reads the live publish form (or its component-tree fallback) and the page
route, and assembles a normalized ContextSnapshot for the prompt composer.

Building never fails: if reading the store raises, the snapshot keeps what
was collected up to that point.
"""

from typing import Any, Optional

from pydantic import ValidationError

from altai.models.context import ContextSnapshot
from altai.models.field_value import FieldKind, classify_field_value, reference_target
from altai.models.page_state import ComponentNode, PageState, PublishModule
from altai.richtext.extractor import extract_blocks_text, extract_text
from altai.services.content_store import find_publish_module
from altai.utils.logging import get_logger


logger = get_logger(__name__)

# System/internal values that are either pinned separately or add no context
EXCLUDED_FIELDS = frozenset({
    "id", "blueprint", "published", "slug", "title",
    "updated_by", "updated_at", "created_at",
    "origin", "site", "locale",
})

# First matching route marker decides the page type
PAGE_TYPE_MARKERS = (
    ("collections", "collection_entry"),
    ("taxonomies", "taxonomy_term"),
    ("globals", "global"),
    ("assets", "asset"),
    ("navigation", "navigation"),
)

PUBLISH_FORM_COMPONENT = "publish-form"


def parse_route(path: str) -> dict[str, Any]:
    """
    Extract structural identifiers from a control-panel path.

    Example:
        >>> parse_route("/cp/collections/auctions/entries/42")
        {'collection': 'auctions', 'entry_id': '42', 'page_type': 'collection_entry'}
    """
    segments = path.split("/")
    parsed: dict[str, Any] = {}

    def segment_after(marker: str) -> Optional[str]:
        if marker not in segments:
            return None
        index = segments.index(marker)
        if index + 1 < len(segments) and segments[index + 1]:
            return segments[index + 1]
        return None

    if collection := segment_after("collections"):
        parsed["collection"] = collection
    if taxonomy := segment_after("taxonomies"):
        parsed["taxonomy"] = taxonomy
    if global_set := segment_after("globals"):
        parsed["global"] = global_set

    entry_segment = segment_after("entries")
    if entry_segment == "create":
        parsed["is_new"] = True
    elif entry_segment:
        parsed["entry_id"] = entry_segment

    parsed["page_type"] = "other"
    for marker, page_type in PAGE_TYPE_MARKERS:
        if marker in segments:
            parsed["page_type"] = page_type
            break

    return parsed


def blueprint_identifier(blueprint: Any) -> Optional[str]:
    """Blueprint handle from a string or from a blueprint object."""
    if isinstance(blueprint, str):
        return blueprint or None
    if isinstance(blueprint, dict):
        for key in ("handle", "name", "namespace"):
            if blueprint.get(key) is not None:
                return str(blueprint[key])
    return None


def blueprint_field_labels(blueprint: Any) -> dict[str, str]:
    """Map field handle -> display label from `tabs[].sections[].fields[]`."""
    labels: dict[str, str] = {}
    if not isinstance(blueprint, dict) or not isinstance(blueprint.get("tabs"), list):
        return labels

    for tab in blueprint["tabs"]:
        sections = tab.get("sections") if isinstance(tab, dict) else None
        if not isinstance(sections, list):
            continue
        for section in sections:
            fields = section.get("fields") if isinstance(section, dict) else None
            if not isinstance(fields, list):
                continue
            for field in fields:
                if isinstance(field, dict) and field.get("handle") and field.get("display"):
                    labels[str(field["handle"])] = str(field["display"])

    return labels


def format_field_value(value: Any) -> Any:
    """
    Format a stored value for the snapshot.

    Returns None when the value should be left out (empty, or a rich
    document without any text).
    """
    kind = classify_field_value(value)

    if kind is FieldKind.EMPTY:
        return None
    if kind is FieldKind.RICH_DOCUMENT:
        return extract_blocks_text(value) or None
    if kind is FieldKind.RICH_NODE:
        return extract_text(value) or None
    if kind is FieldKind.REFERENCE:
        return reference_target(value)
    # SCALAR, LIST, OBJECT pass through unchanged
    return value


def find_publish_component(node: Optional[ComponentNode]) -> Optional[PublishModule]:
    """Depth-first search of the component tree for the publish form."""
    if node is None:
        return None

    if node.name == PUBLISH_FORM_COMPONENT:
        return node.data or PublishModule()

    publish_ref = node.refs.get("publish")
    if publish_ref is not None:
        return publish_ref.data or PublishModule()

    for child in node.children:
        found = find_publish_component(child)
        if found is not None:
            return found

    return None


class SnapshotBuilder:
    """Builds ContextSnapshot instances from the host page state."""

    def build(self, page_state: PageState) -> ContextSnapshot:
        """
        Build a snapshot of the page being edited.

        Args:
            page_state: Route, publish store, component tree and fallbacks

        Returns:
            ContextSnapshot (possibly partial if the store couldn't be read)
        """
        data: dict[str, Any] = {"route": page_state.path}
        data.update(parse_route(page_state.path))

        try:
            publish_data = self._resolve_publish_data(page_state)
            if publish_data is not None:
                self._read_publish_data(publish_data, data)
            self._read_host_config(page_state.host_config, data)
        except Exception as e:
            logger.warning(
                "snapshot_store_read_failed",
                error=str(e),
                error_type=type(e).__name__,
            )

        self._apply_dom_fallbacks(page_state, data)

        try:
            snapshot = ContextSnapshot.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "snapshot_store_read_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            data = {"route": page_state.path, **parse_route(page_state.path)}
            self._apply_dom_fallbacks(page_state, data)
            snapshot = ContextSnapshot.model_validate(data)

        logger.debug(
            "snapshot_built",
            route=snapshot.route,
            page_type=snapshot.page_type,
            field_count=len(snapshot.fields),
            label_count=len(snapshot.field_labels),
        )
        return snapshot

    def _apply_dom_fallbacks(self, page_state: PageState, data: dict[str, Any]) -> None:
        if not data.get("title") and page_state.dom_title:
            data["title"] = page_state.dom_title

        if not data.get("blueprint") and page_state.dom_blueprint:
            data["blueprint"] = page_state.dom_blueprint

    def _resolve_publish_data(self, page_state: PageState) -> Optional[PublishModule]:
        publish_data = None
        found = find_publish_module(page_state.publish)
        if found is not None:
            publish_data = found[1]

        if publish_data is None or not publish_data.values:
            component_data = find_publish_component(page_state.component_tree)
            if component_data is not None:
                logger.debug("snapshot_using_component_tree")
                publish_data = component_data

        return publish_data

    def _read_publish_data(self, publish_data: PublishModule, data: dict[str, Any]) -> None:
        values = publish_data.values

        if publish_data.blueprint:
            if identifier := blueprint_identifier(publish_data.blueprint):
                data["blueprint"] = identifier

        data["field_labels"] = blueprint_field_labels(publish_data.blueprint)

        if values.get("title"):
            data["title"] = values["title"]
        if values.get("slug"):
            data["slug"] = values["slug"]
        if values.get("published") is not None:
            data["status"] = "published" if values["published"] else "draft"

        # Filled in place so a failure part-way keeps the fields read so far
        fields: dict[str, Any] = {}
        data["fields"] = fields
        for handle, value in values.items():
            if handle in EXCLUDED_FIELDS:
                continue
            formatted = format_field_value(value)
            if formatted is None:
                continue
            fields[handle] = formatted

        for key in ("date", "created_at", "updated_at", "author", "parent"):
            if values.get(key):
                data[key] = values[key]
        for key in ("categories", "tags"):
            if isinstance(values.get(key), list):
                data[key] = values[key]

        if publish_data.meta.get("permalink"):
            data["permalink"] = publish_data.meta["permalink"]
        if publish_data.site:
            data["site"] = publish_data.site
        if publish_data.locale:
            data["locale"] = publish_data.locale
        if publish_data.collection:
            data["collection"] = publish_data.collection
        if publish_data.is_root is not None:
            data["is_root"] = publish_data.is_root

    def _read_host_config(self, host_config: dict[str, Any], data: dict[str, Any]) -> None:
        user = host_config.get("user")
        if isinstance(user, dict) and user:
            data["current_user"] = {
                "name": user.get("name") or user.get("email"),
                "email": user.get("email"),
                "id": user.get("id"),
            }

        selected_site = host_config.get("selectedSite")
        if selected_site and not data.get("site"):
            data["site"] = selected_site

        if host_config.get("multisiteEnabled") is not None:
            data["multisite"] = bool(host_config["multisiteEnabled"])
