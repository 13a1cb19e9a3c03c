"""Checks GatewayClasses that their controller did not accept."""

from __future__ import annotations

from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig, Failure, Result, Sensitive


class GatewayClassAnalyzer:
    """Reports GatewayClasses whose current condition is not accepted."""

    KIND = "GatewayClass"

    def analyze(self, config: AnalyzerConfig) -> list[Result]:
        ANALYZER_ERRORS.delete_partial_match({"analyzer_name": self.KIND})
        classes = config.client.list(self.KIND, "", config.label_selector)

        found: dict[str, list[Failure]] = {}
        for gateway_class in classes:
            name = (gateway_class.get("metadata") or {}).get("name", "")
            controller = (gateway_class.get("spec") or {}).get("controllerName", "")
            conditions = (gateway_class.get("status") or {}).get("conditions") or []
            failures = []
            if conditions and conditions[0].get("status") != "True":
                failures.append(
                    Failure(
                        text=(
                            f"GatewayClass '{name}' with a controller name '{controller}' is not accepted. "
                            f"Message: '{conditions[0].get('message', '')}'."
                        ),
                        sensitive=[Sensitive.of(name)],
                    )
                )
            if failures:
                found[name] = failures
                ANALYZER_ERRORS.set(self.KIND, name, "", len(failures))

        return [*config.results, *(Result(kind=self.KIND, name=key, error=failures) for key, failures in found.items())]