"""Running analyzers over a cluster and asking an AI provider to explain the findings."""

from __future__ import annotations

import abc
import base64
import hashlib
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Mapping

from tqdm import tqdm

from clusterdoctor.common import AnalysisStats, AnalyzerConfig, Result
from clusterdoctor.output import render, render_stats
from clusterdoctor.registry import analyzer_map

DEFAULT_PROMPTS: dict[str, str] = {
    "default": (
        "You are helping to fix a problem in a Kubernetes cluster. Answer in {language}.\n"
        "The problem: {text}\n"
        "Explain the cause briefly, then give a step-by-step fix in no more than 280 characters."
    ),
}


def cache_key(provider: str, language: str, text: str) -> str:
    """Return the cache key for an explanation of *text*."""
    return hashlib.sha256(f"{provider}-{language}-{text}".encode()).hexdigest()


class AIClient(abc.ABC):
    """A provider that turns a prompt into an explanation."""

    name: str = ""
    closed: bool = False

    @abc.abstractmethod
    def get_completion(self, prompt: str) -> str:
        """Return the provider's answer to *prompt*."""

    def close(self) -> None:
        """Mark the client as closed; subclasses release what they hold."""
        self.closed = True


class ResultCache(abc.ABC):
    """Storage for explanations, keyed by cache_key."""

    @abc.abstractmethod
    def exists(self, key: str) -> bool: ...

    @abc.abstractmethod
    def load(self, key: str) -> str: ...

    @abc.abstractmethod
    def store(self, key: str, value: str) -> None: ...

    @abc.abstractmethod
    def disable(self) -> None: ...

    @abc.abstractmethod
    def is_disabled(self) -> bool: ...


class MemoryCache(ResultCache):
    """A cache held in memory."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._disabled = False
        self._lock = threading.Lock()

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def load(self, key: str) -> str:
        """Return the stored value or raise KeyError."""
        with self._lock:
            return self._items[key]

    def store(self, key: str, value: str) -> None:
        """Store *value*; a disabled cache keeps nothing."""
        if self._disabled:
            return
        with self._lock:
            self._items[key] = value

    def disable(self) -> None:
        self._disabled = True

    def is_disabled(self) -> bool:
        return self._disabled


class AIProviderError(RuntimeError):
    """Raised when the AI provider fails to explain a result."""


@dataclass
class Analysis:
    """One run of analyzers over a cluster, with optional AI explanations."""

    client: Any = None
    filters: list[str] = field(default_factory=list)
    active_filters: list[str] = field(default_factory=list)
    language: str = "english"
    ai_client: AIClient | None = None
    results: list[Result] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    namespace: str = ""
    label_selector: str = ""
    cache: ResultCache = field(default_factory=MemoryCache)
    explain: bool = False
    max_concurrency: int = 10
    ai_provider: str = ""
    with_doc: bool = False
    with_stats: bool = False
    stats: list[AnalysisStats] = field(default_factory=list)
    openapi_schema: Mapping[str, Mapping[str, str]] | None = None
    prompts: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_PROMPTS))

    def __enter__(self) -> Analysis:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _selected_analyzers(self) -> list[tuple[str, Any]]:
        core, merged = analyzer_map()
        if not self.filters and not self.active_filters:
            return list(core.items())
        if self.filters:
            chosen = []
            for name in self.filters:
                if name in merged:
                    chosen.append((name, merged[name]))
                else:
                    self.errors.append(f'"{name}" filter does not exist. Please list the available filters.')
            return chosen
        return [(name, merged[name]) for name in self.active_filters if name in merged]

    def _execute(self, name: str, analyzer: Any, config: AnalyzerConfig) -> tuple[list[Result] | None, str | None, float]:
        started = time.perf_counter()
        try:
            results = analyzer.analyze(config)
        except Exception as err:  # an analyzer failing must not stop the others
            return None, f"[{name}] {err}", time.perf_counter() - started
        return results, None, time.perf_counter() - started

    def run_analysis(self) -> None:
        """Run the selected analyzers and collect their results and errors."""
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        config = AnalyzerConfig(
            client=self.client,
            namespace=self.namespace,
            label_selector=self.label_selector,
            ai_client=self.ai_client,
            openapi_schema=self.openapi_schema if self.with_doc else None,
        )
        selected = self._selected_analyzers()
        with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
            futures = [(name, pool.submit(self._execute, name, analyzer, config)) for name, analyzer in selected]
        for name, future in futures:
            results, error, elapsed = future.result()
            if self.with_stats:
                self.stats.append(AnalysisStats(analyzer=name, duration=elapsed))
            if error is not None:
                self.errors.append(error)
            else:
                self.results.extend(results or [])

    def get_ai_results(self, output: str = "", anonymize: bool = False) -> None:
        """Ask the AI provider to explain every result, filling in its details."""
        if not self.results:
            return
        if self.ai_client is None:
            raise AIProviderError("no AI provider configured")

        with tqdm(total=len(self.results), disable=output == "json") as bar:
            for result in self.results:
                texts = []
                for failure in result.error:
                    text = failure.text
                    if anonymize:
                        for item in failure.sensitive:
                            text = text.replace(item.unmasked, item.masked)
                    texts.append(text)

                template = self.prompts.get(result.kind, self.prompts.get("default", ""))
                try:
                    answer = self._explain(texts, template)
                except Exception as err:
                    provider = self.ai_client.name
                    if "status code: 429" in str(err):
                        raise AIProviderError(f"exhausted API quota for AI provider {provider}: {err}") from err
                    raise AIProviderError(f"failed while calling AI provider {provider}: {err}") from err

                if anonymize:
                    for failure in result.error:
                        for item in failure.sensitive:
                            answer = answer.replace(item.masked, item.unmasked)
                result.details = answer
                bar.update(1)

    def _explain(self, texts: list[str], template: str) -> str:
        joined = " ".join(texts)
        key = cache_key(self.ai_client.name, self.language, joined)

        if not self.cache.is_disabled() and self.cache.exists(key):
            cached = self.cache.load(key)
            if cached:
                try:
                    return base64.b64decode(cached, validate=True).decode("utf-8")
                except ValueError as err:
                    print(f"error decoding cached data; ignoring cache item: {err}", file=sys.stderr)

        prompt = template.strip().format(language=self.language, text=joined)
        answer = self.ai_client.get_completion(prompt)
        try:
            self.cache.store(key, base64.b64encode(answer.encode("utf-8")).decode("ascii"))
        except Exception as err:
            print(f"error storing value to cache; value won't be cached: {err}", file=sys.stderr)
        return answer

    def print_output(self, format: str) -> str:
        """Render the analysis in the named format."""
        return render(self, format)

    def print_stats(self) -> str:
        """Render how long each analyzer took."""
        return render_stats(self)

    def close(self) -> None:
        """Close the AI client, if any."""
        if self.ai_client is not None:
            self.ai_client.close()