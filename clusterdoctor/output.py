"""Rendering of analysis results as JSON, plain text and timing statistics."""

from __future__ import annotations

import enum
import json
import os
import sys
from typing import Any, Callable

from termcolor import colored


class AnalysisStatus(str, enum.Enum):
    """Overall verdict of an analysis."""

    OK = "OK"
    PROBLEM_DETECTED = "ProblemDetected"


class UnsupportedFormatError(ValueError):
    """Raised when an output format is not known."""


def _colour_enabled() -> bool:
    return "NO_COLOR" not in os.environ and sys.stdout.isatty()


def _paint(text: str, colour: str) -> str:
    return colored(text, colour) if _colour_enabled() else text


def _format_fraction(value: int, unit: int) -> str:
    whole, fraction = divmod(value, unit)
    if not fraction:
        return str(whole)
    width = len(str(unit)) - 1
    return f"{whole}.{str(fraction).rjust(width, '0').rstrip('0')}"


def _format_duration(seconds: float) -> str:
    """Format a duration the way time spans are usually shown: 1.5s, 250ms, 1m30s."""
    nanos = round(seconds * 1_000_000_000)
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_format_fraction(nanos, 1_000)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_format_fraction(nanos, 1_000_000)}ms"
    hours, rest = divmod(nanos, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    text = f"{_format_fraction(rest, 1_000_000_000)}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


def render_json(analysis: Any) -> str:
    """Return the analysis as an indented JSON document."""
    problems = sum(len(result.error) for result in analysis.results)
    status = AnalysisStatus.PROBLEM_DETECTED if problems > 0 else AnalysisStatus.OK
    document = {
        "provider": analysis.ai_provider,
        "errors": list(analysis.errors),
        "status": status.value,
        "problems": problems,
        "results": [result.to_dict() for result in analysis.results],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def render_text(analysis: Any) -> str:
    """Return the analysis as human-readable text."""
    parts: list[str] = []
    if analysis.explain:
        parts.append(f"AI Provider: {_paint(analysis.ai_provider, 'yellow')}\n")
    else:
        parts.append(f"AI Provider: {_paint('AI not used; --explain not set', 'yellow')}\n")

    if analysis.errors:
        parts.append("\n")
        parts.append(_paint("Warnings : \n", "yellow"))
        parts.extend(f"- {_paint(error, 'yellow')}\n" for error in analysis.errors)
    parts.append("\n")

    if not analysis.results:
        parts.append(_paint("No problems detected\n", "green"))
        return "".join(parts)

    for number, result in enumerate(analysis.results):
        parts.append(
            f"{_paint(str(number), 'cyan')}: {_paint(result.kind, 'light_yellow')} "
            f"{_paint(result.name, 'yellow')}({_paint(result.parent_object, 'cyan')})\n"
        )
        for failure in result.error:
            parts.append(f"- {_paint('Error:', 'red')} {_paint(failure.text, 'red')}\n")
            if failure.kubernetes_doc:
                parts.append(f"  {_paint('Kubernetes Doc:', 'red')} {_paint(failure.kubernetes_doc, 'red')}\n")
        parts.append(_paint(result.details + "\n", "green"))
    return "".join(parts)


def render_stats(analysis: Any) -> str:
    """Return how long each analyzer took."""
    parts = [
        _paint(
            "The stats mode allows for debugging and understanding the time taken by an analysis "
            "by displaying the statistics of each analyzer.\n",
            "yellow",
        )
    ]
    parts.extend(
        f"- Analyzer {_paint(stat.analyzer, 'yellow')} took {_format_duration(stat.duration)} \n"
        for stat in analysis.stats
    )
    return "".join(parts)


_RENDERERS: dict[str, Callable[[Any], str]] = {
    "json": render_json,
    "text": render_text,
}


def output_formats() -> list[str]:
    """Return the names of the supported output formats."""
    return list(_RENDERERS)


def render(analysis: Any, format: str) -> str:
    """Render *analysis* in the named *format*."""
    renderer = _RENDERERS.get(format)
    if renderer is None:
        raise UnsupportedFormatError(
            f"unsupported output format: {format}. Available format {','.join(output_formats())}"
        )
    return renderer(analysis)