"""Checks Gateways for missing classes and rejected status."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.cluster import NotFoundError
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


def _find_gateway_class(client: Any, namespace: str, name: str) -> Mapping[str, Any] | None:
    """Look a GatewayClass up cluster-wide, then in the Gateway's namespace."""
    for scope in dict.fromkeys(("", namespace)):
        try:
            return client.get("GatewayClass", scope, name)
        except NotFoundError:
            continue
    return None


class GatewayAnalyzer:
    """Reports Gateways whose class is missing or that were not accepted."""

    KIND = "Gateway"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        gateways = config.client.list(self.KIND, "", config.label_selector)

        found: dict[str, list[Failure]] = {}
        for gateway in gateways:
            failures = list(self._failures(gateway, config.client))
            if failures:
                meta = gateway.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _failures(self, gateway: Mapping[str, Any], client: Any) -> Iterator[Failure]:
        meta = gateway.get("metadata") or {}
        namespace, name = meta.get("namespace", ""), meta.get("name", "")
        class_name = (gateway.get("spec") or {}).get("gatewayClassName", "")

        if _find_gateway_class(client, namespace, class_name) is None:
            yield Failure(
                text=f"Gateway uses the GatewayClass {class_name} which does not exist.",
                sensitive=[Sensitive.of(class_name)],
            )

        conditions = (gateway.get("status") or {}).get("conditions") or []
        if conditions and conditions[0].get("status") != "True":
            yield Failure(
                text=(
                    f"Gateway '{namespace}/{name}' is not accepted. "
                    f"Message: '{conditions[0].get('message', '')}'."
                ),
                sensitive=[Sensitive.of(namespace), Sensitive.of(name)],
            )