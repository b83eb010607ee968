"""Tool Dispatcher: validation, routing and result normalization."""

from .content import render
from .dispatcher import ToolDispatcher, missing_required

__all__ = ["ToolDispatcher", "missing_required", "render"]
