"""The catalogue of analyzers, by the resource kind each one checks."""

from __future__ import annotations

from typing import Any, NamedTuple

from clusterdoctor.cronjob import CronJobAnalyzer
from clusterdoctor.deployment import DeploymentAnalyzer
from clusterdoctor.gateway import GatewayAnalyzer
from clusterdoctor.gatewayclass import GatewayClassAnalyzer
from clusterdoctor.hpa import HpaAnalyzer
from clusterdoctor.httproute import HTTPRouteAnalyzer
from clusterdoctor.ingress import IngressAnalyzer
from clusterdoctor.log import LogAnalyzer
from clusterdoctor.mutating_webhook import MutatingWebhookAnalyzer
from clusterdoctor.netpol import NetworkPolicyAnalyzer


class Filters(NamedTuple):
    """Names of the analyzers that can be selected."""

    core: list[str]
    additional: list[str]


def core_analyzers() -> dict[str, Any]:
    """Return the analyzers that run when no filter is chosen."""
    return {
        "Deployment": DeploymentAnalyzer(),
        "Ingress": IngressAnalyzer(),
        "CronJob": CronJobAnalyzer(),
        "MutatingWebhookConfiguration": MutatingWebhookAnalyzer(),
    }


def additional_analyzers() -> dict[str, Any]:
    """Return the analyzers that run only when selected by a filter."""
    return {
        "HorizontalPodAutoScaler": HpaAnalyzer(),
        "NetworkPolicy": NetworkPolicyAnalyzer(),
        "Log": LogAnalyzer(),
        "GatewayClass": GatewayClassAnalyzer(),
        "Gateway": GatewayAnalyzer(),
        "HTTPRoute": HTTPRouteAnalyzer(),
    }


def list_filters() -> Filters:
    """Return the names of the core and of the additional analyzers."""
    return Filters(core=list(core_analyzers()), additional=list(additional_analyzers()))


def analyzer_map() -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the core analyzers and the merged map of every analyzer."""
    core = core_analyzers()
    merged = {**core, **additional_analyzers()}
    return core, merged