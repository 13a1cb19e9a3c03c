"""Checks NetworkPolicies that select every pod or no pod at all."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


def _selector_string(labels: Mapping[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in labels.items())


class NetworkPolicyAnalyzer:
    """Reports policies that allow traffic to all pods or apply to none."""

    KIND = "NetworkPolicy"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        policies = config.client.list(self.KIND, config.namespace, config.label_selector)

        found: dict[str, list[Failure]] = {}
        for policy in policies:
            failures = list(self._failures(policy, config))
            if failures:
                meta = policy.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(self, policy: Mapping[str, Any], config: AnalyzerConfig) -> Iterator[Failure]:
        name = (policy.get("metadata") or {}).get("name", "")
        match_labels = ((policy.get("spec") or {}).get("podSelector") or {}).get("matchLabels") or {}

        if not match_labels:
            yield Failure(
                text=f"Network policy allows traffic to all pods: {name}",
                kubernetes_doc=config.api_doc(self.KIND, "spec.podSelector.matchLabels"),
                sensitive=[Sensitive.of(name)],
            )
            return

        pods = config.client.list("Pod", config.namespace, _selector_string(match_labels))
        if not pods:
            yield Failure(
                text=f"Network policy is not applied to any pods: {name}",
                sensitive=[Sensitive.of(name)],
            )