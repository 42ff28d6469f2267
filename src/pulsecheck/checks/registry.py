"""Ordered registry of health checks."""

from collections.abc import Iterable, Iterator
from typing import Annotated

from pydantic import Field

from pulsecheck.checks.base import Check
from pulsecheck.checks.command import CommandCheck
from pulsecheck.checks.structured import JsonExitCheck, JsonStatusCheck

# Configured check definition, selected by its ``kind`` field
CheckDefinition = Annotated[
    CommandCheck | JsonStatusCheck | JsonExitCheck,
    Field(discriminator="kind"),
]


class CheckRegistry:
    """Checks in registration order.

    Built once at startup; cycles iterate it in order, one check at a
    time.
    """

    def __init__(self, checks: Iterable[Check] = ()):
        self._checks: dict[str, Check] = {}
        for check in checks:
            self.register(check)

    def register(self, check: Check) -> None:
        """Register a check.

        Raises:
            ValueError: If a check with the same name is registered
        """
        if check.name in self._checks:
            raise ValueError(f"Duplicate check name: {check.name!r}")
        self._checks[check.name] = check

    def get_check(self, name: str) -> Check:
        """Retrieve a check by name.

        Raises:
            KeyError: If no such check is registered
        """
        return self._checks[name]

    def select(self, groups: Iterable[str] = ()) -> list[Check]:
        """Checks to run: ungrouped ones plus members of groups."""
        wanted = set(groups)
        return [
            check for check in self._checks.values()
            if check.group is None or check.group in wanted
        ]

    def __iter__(self) -> Iterator[Check]:
        return iter(self._checks.values())

    def __len__(self) -> int:
        return len(self._checks)
