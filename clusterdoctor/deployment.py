"""Checks Deployments whose replica counts do not match."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


class DeploymentAnalyzer:
    """Reports Deployments whose running replicas differ from the desired count."""

    KIND = "Deployment"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        deployments = config.client.list(self.KIND, config.namespace, config.label_selector)

        found: dict[str, list[Failure]] = {}
        for deployment in deployments:
            failures = list(self._failures(deployment, config))
            if failures:
                meta = deployment.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(self, deployment: Mapping[str, Any], config: AnalyzerConfig) -> Iterator[Failure]:
        meta = deployment.get("metadata") or {}
        namespace, name = meta.get("namespace", ""), meta.get("name", "")
        wanted = (deployment.get("spec") or {}).get("replicas", 1)
        running = (deployment.get("status") or {}).get("replicas", 0)
        if wanted != running:
            yield Failure(
                text=f"Deployment {namespace}/{name} has {wanted} replicas but {running} are available",
                kubernetes_doc=config.api_doc(self.KIND, "spec.replicas"),
                sensitive=[Sensitive.of(namespace), Sensitive.of(name)],
            )