"""Health check definitions and registry."""

from pulsecheck.checks.base import Check
from pulsecheck.checks.command import CommandCheck
from pulsecheck.checks.registry import CheckDefinition, CheckRegistry
from pulsecheck.checks.structured import JsonExitCheck, JsonStatusCheck

__all__ = [
    "Check",
    "CheckDefinition",
    "CheckRegistry",
    "CommandCheck",
    "JsonExitCheck",
    "JsonStatusCheck",
]
