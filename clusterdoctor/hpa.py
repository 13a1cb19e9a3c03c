"""Checks HorizontalPodAutoscalers for failing conditions and unusable targets."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.cluster import NotFoundError
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive

_TARGET_KINDS = frozenset({"Deployment", "ReplicationController", "ReplicaSet", "StatefulSet"})


def pod_spec(workload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the pod template spec of a scalable workload."""
    template = (workload.get("spec") or {}).get("template") or {}
    return template.get("spec") or {}


def _has_resources(container: Mapping[str, Any]) -> bool:
    resources = container.get("resources") or {}
    return resources.get("requests") is not None and resources.get("limits") is not None


class HpaAnalyzer:
    """Reports autoscalers with unhealthy conditions or broken scale targets."""

    KIND = "HorizontalPodAutoscaler"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        autoscalers = config.client.list(self.KIND, config.namespace, config.label_selector)

        found: dict[str, list[Failure]] = {}
        for hpa in autoscalers:
            failures = list(self._failures(hpa, config))
            if failures:
                meta = hpa.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(self, hpa: Mapping[str, Any], config: AnalyzerConfig) -> Iterator[Failure]:
        namespace = (hpa.get("metadata") or {}).get("namespace", "")

        for condition in (hpa.get("status") or {}).get("conditions") or []:
            if condition.get("status") != "True":
                yield Failure(text=condition.get("message", ""), sensitive=[])

        ref = (hpa.get("spec") or {}).get("scaleTargetRef") or {}
        target_kind, target_name = ref.get("kind", ""), ref.get("name", "")

        workload = None
        if target_kind in _TARGET_KINDS:
            try:
                workload = config.client.get(target_kind, namespace, target_name)
            except NotFoundError:
                workload = None
        else:
            yield Failure(
                text=f"HorizontalPodAutoscaler uses {target_kind} as ScaleTargetRef which is not an option.",
                sensitive=[],
            )

        if workload is None:
            yield Failure(
                text=(
                    f"HorizontalPodAutoscaler uses {target_kind}/{target_name} as ScaleTargetRef "
                    "which does not exist."
                ),
                kubernetes_doc=config.api_doc(self.KIND, "spec.scaleTargetRef"),
                sensitive=[Sensitive.of(target_name)],
            )
            return

        containers = pod_spec(workload).get("containers") or []
        configured = sum(1 for container in containers if _has_resources(container))
        if configured <= 0:
            yield Failure(
                text=f"{target_kind} {config.namespace}/{target_name} does not have resource configured.",
                kubernetes_doc=config.api_doc(self.KIND, "spec.scaleTargetRef.kind"),
                sensitive=[Sensitive.of(target_name)],
            )