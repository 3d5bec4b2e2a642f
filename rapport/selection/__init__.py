"""Intermediary candidate selection."""

from rapport.selection.intermediary import IntermediarySelector

__all__ = ["IntermediarySelector"]
