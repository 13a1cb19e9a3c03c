import pytest

from clusterdoctor.cluster import (
    Cluster,
    NotFoundError,
    labels_include_any,
    labels_match,
    parse_label_selector,
)


def _pod(name, namespace="default", labels=None):
    meta = {"name": name, "namespace": namespace}
    if labels is not None:
        meta["labels"] = labels
    return {"kind": "Pod", "metadata": meta, "spec": {"containers": [{"name": "main"}]}}


def test_get_returns_stored_object():
    cluster = Cluster(_pod("example"))
    pod = cluster.get("Pod", "default", "example")
    assert pod["metadata"]["name"] == "example"


def test_get_missing_raises_not_found():
    cluster = Cluster()
    with pytest.raises(NotFoundError) as info:
        cluster.get("Service", "default", "missing")
    assert info.value.name == "missing"
    assert info.value.kind == "Service"


def test_returned_objects_are_copies():
    cluster = Cluster(_pod("example"))
    cluster.get("Pod", "default", "example")["metadata"]["name"] = "changed"
    assert cluster.get("Pod", "default", "example")["metadata"]["name"] == "example"


def test_add_duplicate_raises():
    cluster = Cluster(_pod("example"))
    with pytest.raises(ValueError):
        cluster.add(_pod("example"))


def test_add_without_name_raises():
    with pytest.raises(ValueError):
        Cluster({"kind": "Pod", "metadata": {}})


def test_list_filters_by_namespace_and_kind():
    cluster = Cluster(_pod("a"), _pod("b", namespace="other"), {"kind": "Service", "metadata": {"name": "a", "namespace": "default"}})
    names = [pod["metadata"]["name"] for pod in cluster.list("Pod", "default")]
    assert names == ["a"]
    assert len(cluster.list("Pod")) == 2


def test_list_is_sorted_by_namespace_then_name():
    cluster = Cluster(_pod("b"), _pod("a"), _pod("c", namespace="alpha"))
    keys = [(p["metadata"]["namespace"], p["metadata"]["name"]) for p in cluster.list("Pod")]
    assert keys == sorted(keys)


def test_list_with_label_selector():
    cluster = Cluster(_pod("a", labels={"app": "web"}), _pod("b"))
    names = [pod["metadata"]["name"] for pod in cluster.list("Pod", "default", "app=web")]
    assert names == ["a"]


@pytest.mark.parametrize(
    "selector, labels, expected",
    [
        ("app=web", {"app": "web"}, True),
        ("app==web", {"app": "web"}, True),
        ("app=web", {"app": "db"}, False),
        ("app!=web", {}, True),
        ("app!=web", {"app": "web"}, False),
        ("app", {"app": "x"}, True),
        ("!app", {"app": "x"}, False),
        ("tier in (a, b)", {"tier": "b"}, True),
        ("tier notin (a,b)", {"tier": "a"}, False),
        ("app=web,tier in (a,b)", {"app": "web", "tier": "a"}, True),
        ("app=web,tier in (a,b)", {"app": "web"}, False),
        ("", {"anything": "goes"}, True),
    ],
)
def test_labels_match(selector, labels, expected):
    assert labels_match(selector, labels) is expected


@pytest.mark.parametrize("selector", ["app=web,", "tier in (a", "tier in ()", "=web", "app=web!"])
def test_parse_label_selector_rejects_bad_input(selector):
    with pytest.raises(ValueError):
        parse_label_selector(selector)


def test_parse_label_selector_of_empty_text_is_empty():
    assert parse_label_selector("   ") == ()


def test_labels_include_any():
    assert labels_include_any({"foo": "bar"}, {"foo": "bar", "x": "y"}) is True
    assert labels_include_any({"foo": "bar"}, {"foo": "baz"}) is False
    assert labels_include_any({"foo": "bar"}, None) is False
    assert labels_include_any({}, {"foo": "bar"}) is False


def test_pod_logs_tail_lines():
    cluster = Cluster(_pod("example"))
    cluster.set_logs("default", "example", "main", "one\ntwo\nthree\n")
    assert cluster.pod_logs("default", "example", "main") == "one\ntwo\nthree\n"
    assert cluster.pod_logs("default", "example", "main", tail_lines=2) == "two\nthree\n"
    assert cluster.pod_logs("default", "example", "main", tail_lines=0) == ""


def test_pod_logs_default_to_empty():
    cluster = Cluster(_pod("example"))
    assert cluster.pod_logs("default", "example", "main") == ""


def test_pod_logs_for_missing_pod_raises():
    cluster = Cluster()
    with pytest.raises(NotFoundError):
        cluster.pod_logs("default", "ghost", "main")


def test_pod_logs_negative_tail_raises():
    cluster = Cluster(_pod("example"))
    with pytest.raises(ValueError):
        cluster.pod_logs("default", "example", "main", tail_lines=-1)