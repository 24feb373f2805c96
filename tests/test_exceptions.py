from kubeposture.exception_policy import (
    ExceptionAction,
    PortalDesignator,
    PostureExceptionPolicy,
    PosturePolicy,
)
from kubeposture.exceptions import (
    add_exceptions_to_rule_responses,
    get_exception,
    has_exception,
    list_rule_exceptions,
)
from kubeposture.policy import AlertObject, RuleResponse
from kubeposture.workload import Workload


def alert_only_mock() -> PostureExceptionPolicy:
    return PostureExceptionPolicy(
        name="postureExceptionPolicyAlertOnlyMock",
        policy_type="postureExceptionPolicy",
        actions=[ExceptionAction.ALERT_ONLY],
        resources=[
            PortalDesignator(attributes={"namespace": "default", "cluster": "unittest"})
        ],
        posture_policies=[PosturePolicy(framework_name="MITRE")],
    )


def pod(name="web", namespace="default", labels=None, kind="Pod"):
    metadata = {"name": name, "namespace": namespace}
    if labels is not None:
        metadata["labels"] = labels
    return {"apiVersion": "v1", "kind": kind, "metadata": metadata}


def test_list_rule_exceptions_framework_match():
    res = list_rule_exceptions([alert_only_mock()], "MITRE", "", "")
    assert len(res) == 1


def test_list_rule_exceptions_no_match():
    res = list_rule_exceptions([alert_only_mock()], "", "hostPath mount", "")
    assert len(res) == 0


def test_empty_posture_policy_is_ignored():
    policy = PostureExceptionPolicy(posture_policies=[PosturePolicy()])
    assert list_rule_exceptions([policy], "MITRE", "c", "r") == []


def test_rule_name_must_match():
    policy = PostureExceptionPolicy(posture_policies=[PosturePolicy(rule_name="r1")])
    assert list_rule_exceptions([policy], "any", "any", "r1") == [policy]
    assert list_rule_exceptions([policy], "any", "any", "r2") == []


def test_has_exception_namespace():
    designator = PortalDesignator(attributes={"namespace": "default"})
    assert has_exception(designator, Workload.from_object(pod()))
    assert not has_exception(designator, Workload.from_object(pod(namespace="kube-system")))


def test_has_exception_namespace_object_uses_name():
    designator = PortalDesignator(attributes={"namespace": "default"})
    ns = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": "default"}}
    assert has_exception(designator, Workload.from_object(ns))


def test_empty_designator_matches_nothing():
    assert not has_exception(PortalDesignator(), Workload.from_object(pod()))


def test_has_exception_kind_name_and_labels():
    designator = PortalDesignator(
        attributes={"kind": "Pod", "name": "web", "app": "shop"}
    )
    assert has_exception(designator, Workload.from_object(pod(labels={"app": "shop", "x": "y"})))
    assert not has_exception(designator, Workload.from_object(pod(labels={"app": "other"})))
    assert not has_exception(designator, Workload.from_object(pod(labels={})))
    assert not has_exception(designator, Workload.from_object(pod(name="db", labels={"app": "shop"})))


def test_get_exception_returns_first_match():
    first = alert_only_mock()
    second = PostureExceptionPolicy(
        name="second", resources=[PortalDesignator(attributes={"kind": "Pod"})]
    )
    workload = Workload.from_object(pod())
    assert get_exception([first, second], workload) is first
    other = Workload.from_object(pod(namespace="other"))
    assert get_exception([first, second], other) is second
    assert get_exception([first], other) is None


def test_add_exceptions_sets_warning_status():
    response = RuleResponse(alert_object=AlertObject(k8s_api_objects=[pod()]))
    add_exceptions_to_rule_responses([response], [alert_only_mock()])
    assert response.exception is not None
    assert response.exception.name == "postureExceptionPolicyAlertOnlyMock"
    assert response.rule_status == "warning"


def test_add_exceptions_disable_status():
    policy = PostureExceptionPolicy(
        actions=[ExceptionAction.DISABLE],
        resources=[PortalDesignator(attributes={"namespace": "default"})],
    )
    response = RuleResponse(alert_object=AlertObject(k8s_api_objects=[pod()]))
    add_exceptions_to_rule_responses([response], [policy])
    assert response.rule_status == "ignore"


def test_add_exceptions_without_match_marks_failed():
    response = RuleResponse(alert_object=AlertObject(k8s_api_objects=[pod(namespace="prod")]))
    add_exceptions_to_rule_responses([response], [alert_only_mock()])
    assert response.exception is None
    assert response.rule_status == "failed"


def test_add_exceptions_with_no_exceptions_leaves_status():
    response = RuleResponse(rule_status="untouched", alert_object=AlertObject(k8s_api_objects=[pod()]))
    add_exceptions_to_rule_responses([response], [])
    assert response.rule_status == "untouched"