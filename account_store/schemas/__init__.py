"""Stored document shapes."""

from .account import AccountDocument

__all__ = ["AccountDocument"]
