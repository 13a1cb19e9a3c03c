"""Checks CronJobs for suspension, bad schedules and bad deadlines."""

from __future__ import annotations

import re
import zoneinfo
from typing import Any, Iterator, Mapping, NamedTuple

from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


class CronSyntaxError(ValueError):
    """Raised for a cron schedule that cannot be parsed."""


class _Bounds(NamedTuple):
    low: int
    high: int
    names: Mapping[str, int] = {}


_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"), start=1
    )
}
_DOW_NAMES = {name: number for number, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))}

_FIELDS = (
    _Bounds(0, 59),
    _Bounds(0, 23),
    _Bounds(1, 31),
    _Bounds(1, 12, _MONTH_NAMES),
    _Bounds(0, 6, _DOW_NAMES),
)

_DESCRIPTORS = frozenset({"@yearly", "@annually", "@monthly", "@weekly", "@daily", "@midnight", "@hourly"})
_EVERY = "@every "
_INT = re.compile(r"[+-]?[0-9]+")
_DURATION = re.compile(r"[+-]?(?:0|(?:(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:ns|us|µs|μs|ms|s|m|h))+)")


def _parse_uint(expr: str) -> int:
    if not _INT.fullmatch(expr):
        raise CronSyntaxError(f'failed to parse int from {expr}: parsing "{expr}": invalid syntax')
    number = int(expr)
    if number < 0:
        raise CronSyntaxError(f"negative number ({number}) not allowed: {expr}")
    return number


def _parse_int_or_name(expr: str, names: Mapping[str, int]) -> int:
    if names and expr.lower() in names:
        return names[expr.lower()]
    return _parse_uint(expr)


def _check_range(expr: str, bounds: _Bounds) -> None:
    range_and_step = expr.split("/")
    low_and_high = range_and_step[0].split("-")
    single_digit = len(low_and_high) == 1

    if low_and_high[0] in ("*", "?"):
        start, end = bounds.low, bounds.high
    else:
        start = _parse_int_or_name(low_and_high[0], bounds.names)
        if len(low_and_high) == 1:
            end = start
        elif len(low_and_high) == 2:
            end = _parse_int_or_name(low_and_high[1], bounds.names)
        else:
            raise CronSyntaxError(f"too many hyphens: {expr}")

    if len(range_and_step) == 1:
        step = 1
    elif len(range_and_step) == 2:
        step = _parse_uint(range_and_step[1])
        if single_digit:
            end = bounds.high
    else:
        raise CronSyntaxError(f"too many slashes: {expr}")

    if start < bounds.low:
        raise CronSyntaxError(f"beginning of range ({start}) below minimum ({bounds.low}): {expr}")
    if end > bounds.high:
        raise CronSyntaxError(f"end of range ({end}) above maximum ({bounds.high}): {expr}")
    if start > end:
        raise CronSyntaxError(f"beginning of range ({start}) beyond end of range ({end}): {expr}")
    if step == 0:
        raise CronSyntaxError(f"step of range should be a positive number: {expr}")


def _check_location(zone: str) -> None:
    if zone in ("", "UTC", "Local"):
        return
    try:
        zoneinfo.ZoneInfo(zone)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError) as err:
        raise CronSyntaxError(f"provided bad location {zone}: {err}") from err


def check_cron_schedule_is_valid(schedule: str) -> bool:
    """Return True for a valid five-field cron schedule, else raise CronSyntaxError."""
    if not schedule:
        raise CronSyntaxError("empty spec string")
    spec = schedule

    if spec.startswith(("TZ=", "CRON_TZ=")):
        space = spec.find(" ")
        equals = spec.find("=")
        if space < 0:
            raise CronSyntaxError(f"provided bad location {spec[equals + 1:]}: missing schedule")
        _check_location(spec[equals + 1:space])
        spec = spec[space:].strip()

    if spec.startswith("@"):
        if spec in _DESCRIPTORS:
            return True
        if spec.startswith(_EVERY):
            duration = spec[len(_EVERY):]
            if not _DURATION.fullmatch(duration):
                raise CronSyntaxError(f'failed to parse duration {spec}: invalid duration "{duration}"')
            return True
        raise CronSyntaxError(f"unrecognized descriptor: {spec}")

    fields = spec.split()
    if len(fields) != len(_FIELDS):
        raise CronSyntaxError(
            f"expected exactly {len(_FIELDS)} fields, found {len(fields)}: [{' '.join(fields)}]"
        )
    for text, bounds in zip(fields, _FIELDS):
        for part in text.split(","):
            _check_range(part, bounds)
    return True


class CronJobAnalyzer:
    """Reports suspended CronJobs, invalid schedules and negative deadlines."""

    KIND = "CronJob"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        cron_jobs = config.client.list(self.KIND, config.namespace, config.label_selector)

        found: dict[str, list[Failure]] = {}
        for cron_job in cron_jobs:
            failures = list(self._failures(cron_job, config))
            if failures:
                meta = cron_job.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(self, cron_job: Mapping[str, Any], config: AnalyzerConfig) -> Iterator[Failure]:
        meta = cron_job.get("metadata") or {}
        namespace, name = meta.get("namespace", ""), meta.get("name", "")
        spec = cron_job.get("spec") or {}

        def sensitive() -> list[Sensitive]:
            return [Sensitive.of(namespace), Sensitive.of(name)]

        if spec.get("suspend"):
            yield Failure(
                text=f"CronJob {name} is suspended",
                kubernetes_doc=config.api_doc(self.KIND, "spec.suspend"),
                sensitive=sensitive(),
            )
            return

        try:
            check_cron_schedule_is_valid(spec.get("schedule") or "")
        except CronSyntaxError as err:
            yield Failure(
                text=f"CronJob {name} has an invalid schedule: {err}",
                kubernetes_doc=config.api_doc(self.KIND, "spec.schedule"),
                sensitive=sensitive(),
            )

        deadline = spec.get("startingDeadlineSeconds")
        if deadline is not None and deadline < 0:
            yield Failure(
                text=f"CronJob {name} has a negative starting deadline",
                kubernetes_doc=config.api_doc(self.KIND, "spec.startingDeadlineSeconds"),
                sensitive=sensitive(),
            )