"""Checks HTTPRoutes for missing gateways, refused attachment and bad backends."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from clusterdoctor.cluster import NotFoundError, labels_include_any
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


class HTTPRouteAnalyzer:
    """Reports HTTPRoutes whose gateways or backend services do not fit."""

    KIND = "HTTPRoute"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        routes = config.client.list(self.KIND, "", config.label_selector)

        found: dict[str, list[Failure]] = {}
        for route in routes:
            failures = [
                *self._gateway_failures(route, config.client),
                *self._backend_failures(route, config.client),
            ]
            if failures:
                meta = route.get("metadata") or {}
                namespace, name = meta.get("namespace", ""), meta.get("name", "")
                found[f"{namespace}/{name}"] = failures
                ANALYZER_ERRORS.set(self.KIND, name, namespace, len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]

    def _gateway_failures(self, route: Mapping[str, Any], client: Any) -> Iterator[Failure]:
        meta = route.get("metadata") or {}
        route_namespace, route_name = meta.get("namespace", ""), meta.get("name", "")
        route_labels = meta.get("labels") or {}

        for ref in (route.get("spec") or {}).get("parentRefs") or []:
            namespace = ref.get("namespace") or route_namespace
            gateway_name = ref.get("name", "")
            try:
                gateway = client.get("Gateway", namespace, gateway_name)
            except NotFoundError:
                yield Failure(
                    text=(
                        f"HTTPRoute uses the Gateway '{namespace}/{gateway_name}' "
                        "which does not exist in the same namespace."
                    ),
                    sensitive=[Sensitive.of(namespace), Sensitive.of(gateway_name)],
                )
                continue

            gateway_meta = gateway.get("metadata") or {}
            gw_namespace, gw_name = gateway_meta.get("namespace", ""), gateway_meta.get("name", "")

            def sensitive() -> list[Sensitive]:
                return [
                    Sensitive.of(route_namespace),
                    Sensitive.of(route_name),
                    Sensitive.of(gw_namespace),
                    Sensitive.of(gw_name),
                ]

            for listener in (gateway.get("spec") or {}).get("listeners") or []:
                allowed = (listener.get("allowedRoutes") or {}).get("namespaces")
                if allowed is None:
                    continue
                origin = allowed.get("from") or "Same"
                if origin == "Same":
                    if route_namespace != gw_namespace:
                        yield Failure(
                            text=(
                                f"HTTPRoute '{route_namespace}/{route_name}' is deployed in a different "
                                f"namespace from Gateway '{gw_namespace}/{gw_name}' which only allows "
                                "HTTPRoutes from its namespace."
                            ),
                            sensitive=sensitive(),
                        )
                elif origin == "Selector":
                    match_labels = (allowed.get("selector") or {}).get("matchLabels")
                    if not labels_include_any(match_labels, route_labels):
                        yield Failure(
                            text=(
                                f"HTTPRoute '{route_namespace}/{route_name}' can't be attached on Gateway "
                                f"'{gw_namespace}/{gw_name}', selector labels do not match "
                                "HTTProute's labels."
                            ),
                            sensitive=sensitive(),
                        )

    def _backend_failures(self, route: Mapping[str, Any], client: Any) -> Iterator[Failure]:
        route_namespace = (route.get("metadata") or {}).get("namespace", "")

        for rule in (route.get("spec") or {}).get("rules") or []:
            for backend in rule.get("backendRefs") or []:
                backend_name = backend.get("name", "")
                try:
                    service = client.get("Service", route_namespace, backend_name)
                except NotFoundError:
                    yield Failure(
                        text=f"HTTPRoute uses the Service '{route_namespace}/{backend_name}' which does not exist.",
                        sensitive=[Sensitive.of(route_namespace), Sensitive.of(backend_name)],
                    )
                    continue

                port = backend.get("port")
                if port is None:
                    continue
                service_meta = service.get("metadata") or {}
                svc_namespace, svc_name = service_meta.get("namespace", ""), service_meta.get("name", "")
                ports = (service.get("spec") or {}).get("ports") or []
                if not any(item.get("port") == port for item in ports):
                    yield Failure(
                        text=(
                            f"HTTPRoute's backend service '{backend_name}' is using port '{port}' but the "
                            f"corresponding K8s service '{svc_namespace}/{svc_name}' isn't configured "
                            "with the same port."
                        ),
                        sensitive=[
                            Sensitive.of(backend_name),
                            Sensitive.of(svc_name),
                            Sensitive(unmasked=svc_namespace, masked=svc_namespace),
                        ],
                    )