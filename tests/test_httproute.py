from clusterdoctor.cluster import Cluster
from clusterdoctor.common import AnalyzerConfig
from clusterdoctor.httproute import HTTPRouteAnalyzer


def build_route_gateway(namespace, name, origin):
    namespaces = {"from": origin}
    if origin == "Selector":
        namespaces["selector"] = {"matchLabels": {"foo": "bar"}}
    elif origin != "Same":
        namespaces["from"] = "All"
    return {
        "kind": "Gateway",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "gatewayClassName": "fooclassName",
            "listeners": [
                {
                    "name": "proxy",
                    "port": 80,
                    "protocol": "HTTP",
                    "allowedRoutes": {"namespaces": namespaces},
                }
            ],
        },
        "status": {
            "conditions": [
                {"type": "Accepted", "status": "True", "message": "An expected message", "reason": "Test"}
            ]
        },
    }


def build_http_route(backend_name, gateway_name, gateway_namespace, port, namespace, labels=None):
    metadata = {"name": "foohttproute", "namespace": namespace}
    if labels is not None:
        metadata["labels"] = labels
    return {
        "kind": "HTTPRoute",
        "metadata": metadata,
        "spec": {
            "parentRefs": [{"name": gateway_name, "namespace": gateway_namespace}],
            "rules": [{"backendRefs": [{"name": backend_name, "port": port}]}],
        },
    }


def build_service(name, namespace, port):
    return {
        "kind": "Service",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "selector": {"app": "example-app"},
            "ports": [{"name": "http", "protocol": "TCP", "port": port, "targetPort": 8080}],
            "type": "ClusterIP",
        },
    }


def analyze(*objects):
    return HTTPRouteAnalyzer().analyze(AnalyzerConfig(client=Cluster(*objects), namespace="default"))


def texts(results):
    return [failure.text for result in results for failure in result.error]


def test_missing_gateway():
    results = analyze(build_http_route("foobackend", "non-existent", "non-existent", 1027, "default"))
    assert (
        "HTTPRoute uses the Gateway 'non-existent/non-existent' which does not exist in the same namespace."
        in texts(results)
    )
    assert results[0].name == "default/foohttproute"
    assert results[0].kind == "HTTPRoute"


def test_gateway_only_allows_same_namespace():
    results = analyze(
        build_http_route("foobackend", "gatewayname", "differentnamespace", 1027, "default"),
        build_route_gateway("differentnamespace", "gatewayname", "Same"),
    )
    assert (
        "HTTPRoute 'default/foohttproute' is deployed in a different namespace from Gateway "
        "'differentnamespace/gatewayname' which only allows HTTPRoutes from its namespace."
        in texts(results)
    )


def test_gateway_selector_does_not_match():
    results = analyze(
        build_http_route("foobackend", "gatewayname", "default", 1027, "default"),
        build_route_gateway("default", "gatewayname", "Selector"),
    )
    assert (
        "HTTPRoute 'default/foohttproute' can't be attached on Gateway 'default/gatewayname', "
        "selector labels do not match HTTProute's labels."
        in texts(results)
    )


def test_gateway_selector_matches_route_labels():
    results = analyze(
        build_http_route("foobackend", "gatewayname", "default", 80, "default", {"foo": "bar"}),
        build_route_gateway("default", "gatewayname", "Selector"),
        build_service("foobackend", "default", 80),
    )
    assert results == []


def test_missing_service():
    results = analyze(
        build_http_route("foobackend", "gatewayname", "default", 1027, "default"),
        build_route_gateway("default", "gatewayname", "Same"),
    )
    assert "HTTPRoute uses the Service 'default/foobackend' which does not exist." in texts(results)


def test_service_port_differs():
    results = analyze(
        build_http_route("foobackend", "gatewayname", "default", 1027, "default"),
        build_route_gateway("default", "gatewayname", "Same"),
        build_service("foobackend", "default", 80),
    )
    assert texts(results) == [
        "HTTPRoute's backend service 'foobackend' is using port '1027' but the corresponding K8s "
        "service 'default/foobackend' isn't configured with the same port."
    ]
    assert results[0].error[0].sensitive[2].masked == "default"


def test_healthy_route():
    results = analyze(
        build_http_route("foobackend", "gatewayname", "default", 80, "default"),
        build_route_gateway("default", "gatewayname", "Same"),
        build_service("foobackend", "default", 80),
    )
    assert results == []