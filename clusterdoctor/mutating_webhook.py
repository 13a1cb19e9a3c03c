"""Checks mutating admission webhooks whose receiving service is unusable."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.cluster import NotFoundError
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


def _selector_string(labels: Mapping[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in labels.items())


class MutatingWebhookAnalyzer:
    """Reports mutating webhooks that point at missing services or idle pods."""

    KIND = "MutatingWebhookConfiguration"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        webhook_configs = config.client.list(self.KIND, "", config.label_selector)

        found: dict[str, list[Failure]] = {}
        for webhook_config in webhook_configs:
            config_namespace = (webhook_config.get("metadata") or {}).get("namespace", "")
            for webhook in webhook_config.get("webhooks") or []:
                webhook_name = webhook.get("name", "")
                failures = list(self._failures(webhook, config_namespace, config))
                if failures:
                    found[f"{config_namespace}/{webhook_name}"] = failures
                    ANALYZER_ERRORS.set(self.KIND, webhook_name, config_namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(
        self, webhook: Mapping[str, Any], config_namespace: str, config: AnalyzerConfig
    ) -> Iterator[Failure]:
        reference = (webhook.get("clientConfig") or {}).get("service")
        if reference is None:
            return
        webhook_name = webhook.get("name", "")
        service_namespace, service_name = reference.get("namespace", ""), reference.get("name", "")
        service_doc = config.api_doc(self.KIND, "spec.webhook.clientConfig.service")

        try:
            service = config.client.get("Service", service_namespace, service_name)
        except NotFoundError:
            yield Failure(
                text=f"Service {service_name} not found as mapped to by Mutating Webhook {webhook_name}",
                kubernetes_doc=service_doc,
                sensitive=[Sensitive.of(config_namespace), Sensitive.of(service_name)],
            )
            return

        selector = (service.get("spec") or {}).get("selector") or {}
        if not selector:
            # Services without selectors are left to the service checks.
            return

        pods = config.client.list("Pod", service_namespace, _selector_string(selector))
        if not pods:
            yield Failure(
                text=(
                    f"No active pods found within service {service_name} "
                    f"as mapped to by Mutating Webhook {webhook_name}"
                ),
                kubernetes_doc=service_doc,
                sensitive=[Sensitive.of(config_namespace)],
            )

        for pod in pods:
            phase = (pod.get("status") or {}).get("phase", "")
            if phase != "Running":
                pod_name = (pod.get("metadata") or {}).get("name", "")
                yield Failure(
                    text=f"Mutating Webhook ({webhook_name}) is pointing to an inactive receiver pod ({pod_name})",
                    kubernetes_doc=config.api_doc(self.KIND, "spec.webhook"),
                    sensitive=[
                        Sensitive.of(config_namespace),
                        Sensitive.of(webhook_name),
                        Sensitive.of(pod_name),
                    ],
                )