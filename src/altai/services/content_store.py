"""Content store capability and its publish-module implementation."""

from typing import Any, Optional, Protocol

from altai.models.page_state import PublishModule
from altai.services.exceptions import StoreUnavailableError
from altai.utils.logging import get_logger


logger = get_logger(__name__)

# Probe order for the active publish-form module
PUBLISH_MODULE_NAMES = ("base", "default", "entry", "term", "global")


class ContentStore(Protocol):
    """Capability the snapshot builder and reconciler need from the host store."""

    def get_field_values(self) -> dict[str, Any]:
        ...

    def set_field_value(self, handle: str, value: Any) -> None:
        ...

    def get_blueprint(self) -> Any:
        ...


def find_publish_module(
    publish: Optional[dict[str, PublishModule]]
) -> tuple[str, PublishModule] | None:
    """Return the first present publish module as (name, module), or None."""
    if not publish:
        return None
    for name in PUBLISH_MODULE_NAMES:
        module = publish.get(name)
        if module is not None:
            return name, module
    return None


def resolve_publish_module(
    publish: Optional[dict[str, PublishModule]]
) -> tuple[str, PublishModule]:
    """
    Locate the active publish module.

    Raises:
        StoreUnavailableError: If there's no publish store or no known module
    """
    if publish is None:
        logger.error("publish_store_unavailable")
        raise StoreUnavailableError("Cannot apply changes: publish form store not found")

    found = find_publish_module(publish)
    if found is None:
        logger.error("publish_module_not_found", available=sorted(publish.keys()))
        raise StoreUnavailableError("Cannot apply changes: publish module not found")

    return found


class PublishModuleStore:
    """
    ContentStore backed by one publish module.

    Every `set_field_value` call is recorded in `dispatches`, in order, so
    callers (and tests) can see each round of a commit.
    """

    def __init__(self, module_name: str, module: PublishModule):
        self.module_name = module_name
        self.module = module
        self.dispatches: list[tuple[str, Any]] = []

    @classmethod
    def from_publish(cls, publish: Optional[dict[str, PublishModule]]) -> "PublishModuleStore":
        """
        Build a store over the active module of a publish mapping.

        Raises:
            StoreUnavailableError: If no publish module can be found
        """
        name, module = resolve_publish_module(publish)
        return cls(name, module)

    def get_field_values(self) -> dict[str, Any]:
        return self.module.values

    def set_field_value(self, handle: str, value: Any) -> None:
        self.dispatches.append((handle, value))
        self.module.values[handle] = value
        logger.debug(
            "store_field_set",
            module=self.module_name,
            handle=handle,
        )

    def get_blueprint(self) -> Any:
        return self.module.blueprint
