"""Scans recent container logs for error lines."""

from __future__ import annotations

import re
from typing import Any, Iterator, Mapping

from clusterdoctor.cluster import NotFoundError
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive

ERROR_PATTERN = re.compile(r"(error|exception|fail)")
TAIL_LINES = 100


def first_error_line(logs: str, pattern: re.Pattern[str] | str) -> str:
    """Return the first line whose lower-cased form matches *pattern*, or ""."""
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    return next((line for line in logs.split("\n") if compiled.search(line.lower())), "")


class LogAnalyzer:
    """Reports containers whose last log lines mention an error."""

    KIND = "Log"

    def __init__(self, error_pattern: re.Pattern[str] | str = ERROR_PATTERN, tail_lines: int = TAIL_LINES) -> None:
        self.error_pattern = re.compile(error_pattern) if isinstance(error_pattern, str) else error_pattern
        self.tail_lines = tail_lines

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        pods = config.client.list("Pod", config.namespace, config.label_selector)

        found: dict[str, list[Failure]] = {}
        for pod in pods:
            meta = pod.get("metadata") or {}
            namespace, name = meta.get("namespace", ""), meta.get("name", "")
            for container in (pod.get("spec") or {}).get("containers") or []:
                container_name = container.get("name", "")
                failures = list(self._failures(config.client, namespace, name, container_name))
                if failures:
                    found[f"{namespace}/{name}/{container_name}"] = failures
                    ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind="Pod", name=key, error=failures) for key, failures in found.items())]

    def _failures(self, client: Any, namespace: str, pod: str, container: str) -> Iterator[Failure]:
        try:
            logs = client.pod_logs(namespace, pod, container, self.tail_lines)
        except (NotFoundError, OSError) as err:
            yield Failure(text=f"Error {err} from Pod {pod}", sensitive=[Sensitive.of(pod)])
            return
        if self.error_pattern.search(logs.lower()):
            yield Failure(text=first_error_line(logs, self.error_pattern), sensitive=[Sensitive.of(pod)])


def _pod_meta(pod: Mapping[str, Any]) -> Mapping[str, Any]:
    return pod.get("metadata") or {}