"""Reporters for composition depth results."""

from .console import ConsoleReporter
from .json_reporter import JsonReporter

__all__ = ["ConsoleReporter", "JsonReporter"]
