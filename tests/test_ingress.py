from clusterdoctor.cluster import Cluster
from clusterdoctor.common import AnalyzerConfig
from clusterdoctor.ingress import IngressAnalyzer


def _obj(kind, name, namespace="", **extra):
    meta = {"name": name}
    if namespace:
        meta["namespace"] = namespace
    for key in ("labels", "annotations"):
        if key in extra:
            meta[key] = extra.pop(key)
    return {"kind": kind, "metadata": meta, **extra}


def _path(path, service):
    return {"path": path, "backend": {"service": {"name": service}}}


def test_ingress_analyzer():
    valid_class = "valid-ingress-class"
    cluster = Cluster(
        _obj("Ingress", "Ingress1", "default"),
        _obj("Ingress", "Ingress2", "default", annotations={"kubernetes.io/ingress.class": "invalid-class"}),
        _obj("Ingress", "Ingress3", "test"),
        _obj("IngressClass", valid_class),
        _obj("Ingress", "Ingress4", "default", annotations={"kubernetes.io/ingress.class": valid_class}),
        _obj("Service", "Service1", "default"),
        _obj("Service", "Service2", "test"),
        _obj("Secret", "Secret1", "default"),
        _obj("Secret", "Secret2", "test"),
        _obj(
            "Ingress",
            "Ingress5",
            "default",
            spec={
                "ingressClassName": valid_class,
                "rules": [
                    {
                        "http": {
                            "paths": [
                                _path("/", "Service1"),
                                _path("/test1", "Service2"),
                                _path("/test2", "Service3"),
                            ]
                        }
                    }
                ],
                "tls": [{"secretName": "Secret1"}, {"secretName": "Secret2"}, {"secretName": "Secret3"}],
            },
        ),
    )
    results = IngressAnalyzer().analyze(AnalyzerConfig(client=cluster, namespace="default"))
    results.sort(key=lambda result: result.name)

    expectations = [("default/Ingress1", 1), ("default/Ingress2", 1), ("default/Ingress5", 4)]
    assert [(result.name, len(result.error)) for result in results] == expectations
    assert all(result.kind == "Ingress" for result in results)


def test_ingress_failure_texts():
    cluster = Cluster(
        _obj("Ingress", "Ingress1", "default"),
        _obj("Ingress", "Ingress2", "default", annotations={"kubernetes.io/ingress.class": "invalid-class"}),
    )
    results = IngressAnalyzer().analyze(AnalyzerConfig(client=cluster, namespace="default"))
    texts = {result.name: result.error[0].text for result in results}
    assert texts == {
        "default/Ingress1": "Ingress default/Ingress1 does not specify an Ingress class.",
        "default/Ingress2": "Ingress uses the ingress class invalid-class which does not exist.",
    }


def test_ingress_analyzer_label_selector_filtering():
    cluster = Cluster(
        _obj("Ingress", "Ingress1", "default", labels={"app": "ingress"}),
        _obj("Ingress", "Ingress2", "default"),
    )
    results = IngressAnalyzer().analyze(
        AnalyzerConfig(client=cluster, namespace="default", label_selector="app=ingress")
    )
    assert len(results) == 1
    assert results[0].name == "default/Ingress1"