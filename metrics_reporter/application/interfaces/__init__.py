"""Interfaces the application layer requires from infrastructure."""

from .connection import IConnectionSource

__all__ = ["IConnectionSource"]
