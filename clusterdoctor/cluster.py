"""An in-memory store of cluster objects with label-selector queries."""

from __future__ import annotations

import copy
import re
import threading
from typing import Any, Iterable, Mapping, NamedTuple

_KEY = r"[A-Za-z0-9](?:[-A-Za-z0-9_./]*[A-Za-z0-9])?"
_VALUE = r"(?:[A-Za-z0-9](?:[-A-Za-z0-9_.]*[A-Za-z0-9])?)?"
_EQUALITY = re.compile(rf"({_KEY})\s*(==|!=|=)\s*({_VALUE})")
_SET = re.compile(rf"({_KEY})\s+(in|notin)\s*\((.*)\)")
_EXISTS = re.compile(rf"(!?)\s*({_KEY})")
_VALUE_RE = re.compile(_VALUE)


class NotFoundError(LookupError):
    """Raised when a requested object is not in the cluster."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        where = f"{namespace}/{name}" if namespace else name
        super().__init__(f'{kind} "{where}" not found')
        self.kind = kind
        self.namespace = namespace
        self.name = name


class Requirement(NamedTuple):
    """One clause of a label selector."""

    key: str
    operator: str
    values: frozenset[str] = frozenset()

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        value = labels.get(self.key)
        if self.operator in ("=", "==", "in"):
            return present and value in self.values
        if self.operator in ("!=", "notin"):
            return not present or value not in self.values
        if self.operator == "exists":
            return present
        return not present


def _split_requirements(text: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise ValueError(f"unbalanced parentheses in selector: {text!r}")
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    if depth:
        raise ValueError(f"unbalanced parentheses in selector: {text!r}")
    parts.append("".join(current))
    return parts


def _parse_requirement(part: str) -> Requirement:
    if match := _SET.fullmatch(part):
        key, operator, body = match.groups()
        values = [value.strip() for value in body.split(",")]
        if values == [""]:
            raise ValueError(f"for 'in', 'notin' operators, values set can't be empty: {part!r}")
        for value in values:
            if not _VALUE_RE.fullmatch(value):
                raise ValueError(f"invalid label value {value!r} in selector")
        return Requirement(key, operator, frozenset(values))
    if match := _EQUALITY.fullmatch(part):
        key, operator, value = match.groups()
        return Requirement(key, operator, frozenset({value}))
    if match := _EXISTS.fullmatch(part):
        negated, key = match.groups()
        return Requirement(key, "!" if negated else "exists")
    raise ValueError(f"unable to parse requirement: {part!r}")


def parse_label_selector(text: str) -> tuple[Requirement, ...]:
    """Parse a label selector such as ``app=web,tier in (a,b),!legacy``."""
    if not text or not text.strip():
        return ()
    requirements = []
    for part in _split_requirements(text):
        part = part.strip()
        if not part:
            raise ValueError(f"empty requirement in selector: {text!r}")
        requirements.append(_parse_requirement(part))
    return tuple(requirements)


def labels_match(selector: str | Iterable[Requirement], labels: Mapping[str, str] | None) -> bool:
    """Tell whether *labels* satisfy every clause of *selector*."""
    requirements = parse_label_selector(selector) if isinstance(selector, str) else selector
    labels = labels or {}
    return all(requirement.matches(labels) for requirement in requirements)


def labels_include_any(selector: Mapping[str, str] | None, labels: Mapping[str, str] | None) -> bool:
    """Tell whether any key/value pair of *selector* appears in *labels*."""
    labels = labels or {}
    return any(key in labels and labels[key] == value for key, value in (selector or {}).items())


def _metadata(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    return obj.get("metadata") or {}


class Cluster:
    """Cluster objects, held as manifest-shaped dictionaries."""

    def __init__(self, *objects: Mapping[str, Any]) -> None:
        self._objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self._logs: dict[tuple[str, str, str], str] = {}
        self._lock = threading.Lock()
        self.add(*objects)

    def add(self, *args: Mapping[str, Any]) -> None:
        """Store objects; each needs a ``kind`` and a ``metadata.name``."""
        for obj in args:
            kind = obj.get("kind")
            meta = _metadata(obj)
            name = meta.get("name")
            if not kind or not name:
                raise ValueError("an object needs a kind and a metadata.name")
            key = (kind, meta.get("namespace") or "", name)
            with self._lock:
                if key in self._objects:
                    raise ValueError(f'{kind} "{key[1]}/{name}" already exists')
                self._objects[key] = copy.deepcopy(dict(obj))

    def list(self, kind: str, namespace: str = "", label_selector: str = "") -> list[dict[str, Any]]:
        """Return objects of *kind*, all namespaces when *namespace* is empty."""
        requirements = parse_label_selector(label_selector)
        with self._lock:
            candidates = [
                (ns, name, obj)
                for (obj_kind, ns, name), obj in self._objects.items()
                if obj_kind == kind and (not namespace or ns == namespace)
            ]
        matched = [
            (ns, name, copy.deepcopy(obj))
            for ns, name, obj in candidates
            if labels_match(requirements, _metadata(obj).get("labels"))
        ]
        return [obj for _, _, obj in sorted(matched, key=lambda item: (item[0], item[1]))]

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Return one object or raise NotFoundError."""
        with self._lock:
            obj = self._objects.get((kind, namespace or "", name))
        if obj is None:
            raise NotFoundError(kind, namespace, name)
        return copy.deepcopy(obj)

    def set_logs(self, namespace: str, pod: str, container: str, text: str) -> None:
        """Set the log text a container of a pod reports."""
        with self._lock:
            self._logs[(namespace, pod, container)] = text

    def pod_logs(self, namespace: str, pod: str, container: str, tail_lines: int | None = None) -> str:
        """Return a container's logs, the last *tail_lines* lines when given."""
        self.get("Pod", namespace, pod)
        with self._lock:
            text = self._logs.get((namespace, pod, container), "")
        if tail_lines is None:
            return text
        if tail_lines < 0:
            raise ValueError("tail_lines must not be negative")
        if tail_lines == 0:
            return ""
        return "".join(text.splitlines(keepends=True)[-tail_lines:])