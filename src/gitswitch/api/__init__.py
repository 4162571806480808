"""Boundary layer: async facade returning result envelopes."""

from .gateway import CHANNELS, GitSwitchAPI
from .results import ErrorInfo, Result, error_result, ok, to_jsonable
from .services import GitSwitchServices, build_services

__all__ = [
    "CHANNELS",
    "ErrorInfo",
    "GitSwitchAPI",
    "GitSwitchServices",
    "Result",
    "build_services",
    "error_result",
    "ok",
    "to_jsonable",
]
