"""Exceptions shared by the POD services and routes."""
from __future__ import annotations


class PodError(Exception):
    """Base class for podview failures."""


class PodConfigError(PodError):
    """Settings are missing or invalid; raised at startup, never per request."""


class DocumentNotFound(PodError, LookupError):
    """A logical module name is not present in the module index."""

    def __init__(self, name: str):
        super().__init__(f"No POD found for {name!r}")
        self.name = name
