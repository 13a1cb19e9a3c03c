"""Shared data types for cluster analysis: failures, results and metrics."""

from __future__ import annotations

import secrets
import string
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping

_MASK_ALPHABET = string.ascii_letters + string.digits

LABEL_NAMES = ("analyzer_name", "object_name", "namespace")


def mask_string(value: str) -> str:
    """Return a random alphanumeric string as long as *value*."""
    return "".join(secrets.choice(_MASK_ALPHABET) for _ in value)


@dataclass
class Sensitive:
    """A piece of text that may be replaced by a mask before leaving the host."""

    unmasked: str
    masked: str

    @classmethod
    def of(cls, value: str) -> Sensitive:
        """Pair *value* with a freshly generated mask."""
        return cls(unmasked=value, masked=mask_string(value))


@dataclass
class Failure:
    """One problem found on a cluster object."""

    text: str
    kubernetes_doc: str = ""
    sensitive: list[Sensitive] = field(default_factory=list)


@dataclass
class Result:
    """All problems found on one cluster object."""

    kind: str
    name: str
    error: list[Failure] = field(default_factory=list)
    details: str = ""
    parent_object: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the result as a JSON-ready mapping."""
        return {
            "kind": self.kind,
            "name": self.name,
            "error": [
                {
                    "Text": failure.text,
                    "KubernetesDoc": failure.kubernetes_doc,
                    "Sensitive": [
                        {"Unmasked": item.unmasked, "Masked": item.masked}
                        for item in failure.sensitive
                    ],
                }
                for failure in self.error
            ],
            "details": self.details,
            "parentObject": self.parent_object,
        }


@dataclass
class AnalysisStats:
    """Time one analyzer took, in seconds."""

    analyzer: str
    duration: float = 0.0


@dataclass
class AnalyzerConfig:
    """Everything an analyzer needs to inspect a cluster."""

    client: Any
    namespace: str = ""
    label_selector: str = ""
    ai_client: Any = None
    openapi_schema: Mapping[str, Mapping[str, str]] | None = None
    results: list[Result] = field(default_factory=list)

    def api_doc(self, kind: str, field_path: str) -> str:
        """Return the API documentation of *field_path* on *kind*, or ""."""
        if not self.openapi_schema:
            return ""
        return self.openapi_schema.get(kind, {}).get(field_path, "")


class ErrorsGauge:
    """Number of errors per analyzer, object and namespace."""

    def __init__(
        self,
        name: str = "analyzer_errors",
        description: str = "Number of errors detected by analyzer",
    ) -> None:
        self.name = name
        self.description = description
        self._values: dict[tuple[str, str, str], float] = {}
        self._lock = threading.Lock()

    def set(self, analyzer_name: str, object_name: str, namespace: str, value: float) -> None:
        """Record *value* for the given label values."""
        with self._lock:
            self._values[(analyzer_name, object_name, namespace)] = float(value)

    def get(self, analyzer_name: str, object_name: str, namespace: str) -> float | None:
        """Return the recorded value, or None when nothing was recorded."""
        with self._lock:
            return self._values.get((analyzer_name, object_name, namespace))

    def delete_partial_match(self, labels: Mapping[str, str]) -> int:
        """Drop every series whose labels include *labels*; return how many."""
        with self._lock:
            doomed = [
                key
                for key in self._values
                if all(dict(zip(LABEL_NAMES, key)).get(label) == value for label, value in labels.items())
            ]
            for key in doomed:
                del self._values[key]
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


ANALYZER_ERRORS = ErrorsGauge()