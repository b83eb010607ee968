"""Backend Client for the upstream REST API."""

from .http import EMPTY, BackendClient, RawResult, segment

__all__ = ["EMPTY", "BackendClient", "RawResult", "segment"]
