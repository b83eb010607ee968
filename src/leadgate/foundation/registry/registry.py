"""Schema registry: the immutable tool catalog advertised to clients.

The registry only knows descriptors. It is built once, shared read-only by
every session, and its order never changes for the life of the process, so
``tools/list`` is a pure passthrough.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from leadgate.foundation.core import ToolDescriptor


class SchemaRegistry:
    """Ordered, duplicate-free collection of ToolDescriptors.

    Example:
        >>> registry = SchemaRegistry([campaign_get, campaign_list])
        >>> registry.get("campaign_get").name
        'campaign_get'
        >>> "webhook_list" in registry
        False
    """

    __slots__ = ("_tools", "_by_name")

    def __init__(self, descriptors: Iterable[ToolDescriptor]) -> None:
        self._tools: tuple[ToolDescriptor, ...] = tuple(descriptors)
        self._by_name: dict[str, ToolDescriptor] = {}
        for descriptor in self._tools:
            if descriptor.name in self._by_name:
                raise ValueError(f"Tool '{descriptor.name}' registered twice")
            self._by_name[descriptor.name] = descriptor

    def list_tools(self) -> tuple[ToolDescriptor, ...]:
        """All descriptors in registration order."""
        return self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._by_name.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(d.name for d in self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools)

    def __repr__(self) -> str:
        return f"SchemaRegistry({len(self._tools)} tools)"


def default_registry() -> SchemaRegistry:
    """Registry over the full tool catalog: campaigns, leads, analytics, replies, webhooks, email accounts."""
    from leadgate.tools import ALL_SPECS

    return SchemaRegistry(spec.descriptor for spec in ALL_SPECS)
