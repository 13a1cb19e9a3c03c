"""Checks Ingresses for missing classes, backend services and TLS secrets."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.cluster import NotFoundError
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive

_CLASS_ANNOTATION = "kubernetes.io/ingress.class"


def _exists(client: Any, kind: str, namespace: str, name: str) -> bool:
    try:
        client.get(kind, namespace, name)
    except NotFoundError:
        return False
    return True


class IngressAnalyzer:
    """Reports Ingresses that refer to classes, services or secrets that are missing."""

    KIND = "Ingress"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        ingresses = config.client.list(self.KIND, config.namespace, config.label_selector)

        found: dict[str, list[Failure]] = {}
        for ingress in ingresses:
            failures = list(self._failures(ingress, config))
            if failures:
                meta = ingress.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(self, ingress: Mapping[str, Any], config: AnalyzerConfig) -> Iterator[Failure]:
        meta = ingress.get("metadata") or {}
        namespace, name = meta.get("namespace", ""), meta.get("name", "")
        spec = ingress.get("spec") or {}
        client = config.client
        class_doc = config.api_doc(self.KIND, "spec.ingressClassName")

        class_name = spec.get("ingressClassName")
        if class_name is None:
            annotated = (meta.get("annotations") or {}).get(_CLASS_ANNOTATION, "")
            if annotated:
                class_name = annotated
            else:
                yield Failure(
                    text=f"Ingress {namespace}/{name} does not specify an Ingress class.",
                    kubernetes_doc=class_doc,
                    sensitive=[Sensitive.of(namespace), Sensitive.of(name)],
                )

        if class_name is not None and not _exists(client, "IngressClass", "", class_name):
            yield Failure(
                text=f"Ingress uses the ingress class {class_name} which does not exist.",
                kubernetes_doc=class_doc,
                sensitive=[Sensitive.of(class_name)],
            )

        for rule in spec.get("rules") or []:
            http = rule.get("http")
            if not http:
                continue
            for path in http.get("paths") or []:
                service = ((path.get("backend") or {}).get("service") or {}).get("name", "")
                if not _exists(client, "Service", namespace, service):
                    yield Failure(
                        text=f"Ingress uses the service {namespace}/{service} which does not exist.",
                        kubernetes_doc=config.api_doc(self.KIND, "spec.rules.http.paths.backend.service"),
                        sensitive=[Sensitive.of(namespace), Sensitive.of(service)],
                    )

        for tls in spec.get("tls") or []:
            secret_name = tls.get("secretName", "")
            if not _exists(client, "Secret", namespace, secret_name):
                yield Failure(
                    text=(
                        f"Ingress uses the secret {namespace}/{secret_name} as a TLS certificate "
                        "which does not exist."
                    ),
                    kubernetes_doc=config.api_doc(self.KIND, "spec.tls.secretName"),
                    sensitive=[Sensitive.of(namespace), Sensitive.of(secret_name)],
                )