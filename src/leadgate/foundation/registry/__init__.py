"""Tool catalog registry."""

from .registry import SchemaRegistry, default_registry

__all__ = ["SchemaRegistry", "default_registry"]
