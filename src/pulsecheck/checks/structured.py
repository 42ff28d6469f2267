"""Checks whose executors print a JSON status object."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from pulsecheck.checks.base import Check
from pulsecheck.core.jsonscan import extract_json_object
from pulsecheck.core.result import CheckResult, CheckStatus


def lookup(payload: dict[str, Any], path: str) -> Any:
    """Resolve a dotted path such as 'summary.status' in payload."""
    node: Any = payload
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


class StructuredCheck(Check):
    """Shared behaviour for checks that parse a JSON payload."""

    message_prefix: str | None = Field(
        default=None,
        description="Message is '<prefix> <status>' when set",
    )
    extra_fields: list[str] = Field(
        default_factory=list,
        description="Payload keys copied into the result's extra",
    )

    def _message(self, reported: str) -> str:
        if self.message_prefix:
            return f"{self.message_prefix} {reported}"
        return f"status={reported}"

    def _extra(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        if not self.extra_fields:
            return None
        return {key: payload.get(key) for key in self.extra_fields}


class JsonStatusCheck(StructuredCheck):
    """Pass when the payload reports status "pass".

    status_paths are tried in order; the check passes if any of them
    holds "pass". This covers executors that nest their verdict, e.g.
    a host contract scan reporting under summary.status.
    """

    kind: Literal["json-status"] = "json-status"
    status_paths: list[str] = Field(default_factory=lambda: ["status"])

    def parse(self, output: str, exit_code: int) -> CheckResult | None:
        payload = extract_json_object(output)
        if payload is None:
            return None

        values = [lookup(payload, path) for path in self.status_paths]
        if "pass" in values:
            status, reported = CheckStatus.PASS, "pass"
        else:
            status = self.failure_status
            reported = next(
                (str(v) for v in values if v is not None), "unknown"
            )

        return self.result(
            status,
            self._message(reported),
            output,
            payload=payload,
            extra=self._extra(payload),
        )


class JsonExitCheck(StructuredCheck):
    """Require a JSON payload, but take the verdict from the exit code."""

    kind: Literal["json-exit"] = "json-exit"

    def parse(self, output: str, exit_code: int) -> CheckResult | None:
        payload = extract_json_object(output)
        if payload is None:
            return None

        status = (
            CheckStatus.PASS if exit_code == 0 else self.failure_status
        )
        reported = payload.get("status") or str(status)
        return self.result(
            status,
            self._message(str(reported)),
            output,
            payload=payload,
            extra=self._extra(payload),
        )
