from clusterdoctor.cluster import Cluster
from clusterdoctor.common import ANALYZER_ERRORS, AnalyzerConfig
from clusterdoctor.gateway import GatewayAnalyzer


def build_gateway_class(name):
    return {
        "kind": "GatewayClass",
        "metadata": {"name": name, "namespace": "default"},
        "spec": {"controllerName": "gateway.fooproxy.io/gatewayclass-controller"},
    }


def build_gateway(class_name, status, labels=None):
    metadata = {"name": "foobar", "namespace": "default"}
    if labels is not None:
        metadata["labels"] = labels
    return {
        "kind": "Gateway",
        "metadata": metadata,
        "spec": {
            "gatewayClassName": class_name,
            "listeners": [{"name": "proxy", "port": 80, "protocol": "HTTP"}],
        },
        "status": {
            "conditions": [
                {
                    "type": "Accepted",
                    "status": status,
                    "message": "An expected message",
                    "reason": "Test",
                }
            ]
        },
    }


def texts(results):
    return [failure.text for result in results for failure in result.error]


def test_accepted_gateway_with_existing_class():
    cluster = Cluster(build_gateway("exists", "True"), build_gateway_class("exists"))
    results = GatewayAnalyzer().analyze(AnalyzerConfig(client=cluster, namespace="default"))
    assert results == []


def test_missing_class():
    cluster = Cluster(build_gateway("non-existed", "True"))
    results = GatewayAnalyzer().analyze(AnalyzerConfig(client=cluster, namespace="default"))
    assert len(results) == 1
    assert results[0].kind == "Gateway"
    assert results[0].name == "default/foobar"
    assert texts(results) == ["Gateway uses the GatewayClass non-existed which does not exist."]


def test_unknown_status():
    cluster = Cluster(build_gateway("exists", "Unknown"), build_gateway_class("exists"))
    results = GatewayAnalyzer().analyze(AnalyzerConfig(client=cluster, namespace="default"))
    assert "Gateway 'default/foobar' is not accepted. Message: 'An expected message'." in texts(results)


def test_cluster_scoped_class_is_found():
    gateway_class = build_gateway_class("exists")
    del gateway_class["metadata"]["namespace"]
    cluster = Cluster(build_gateway("exists", "True"), gateway_class)
    results = GatewayAnalyzer().analyze(AnalyzerConfig(client=cluster))
    assert results == []


def test_label_selector_filtering():
    cluster = Cluster(build_gateway("non-existed", "True", {"app": "gateway"}))
    analyzer = GatewayAnalyzer()

    assert len(analyzer.analyze(AnalyzerConfig(client=cluster, namespace="default"))) == 1
    assert len(
        analyzer.analyze(AnalyzerConfig(client=cluster, namespace="default", label_selector="app=gateway"))
    ) == 1
    assert analyzer.analyze(
        AnalyzerConfig(client=cluster, namespace="default", label_selector="app=wrong")
    ) == []


def test_metric_counts_failures():
    cluster = Cluster(build_gateway("non-existed", "False"))
    GatewayAnalyzer().analyze(AnalyzerConfig(client=cluster))
    assert ANALYZER_ERRORS.get("Gateway", "foobar", "default") == 2.0