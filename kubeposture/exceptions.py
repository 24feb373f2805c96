"""Matching posture exception policies against rules and workloads."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from kubeposture.exception_policy import PortalDesignator, PostureExceptionPolicy
from kubeposture.policy import AlertObject, RuleResponse
from kubeposture.workload import Workload


def _rule_has_exceptions(
    exception_policy: PostureExceptionPolicy,
    framework_name: str,
    control_name: str,
    rule_name: str,
) -> bool:
    for policy in exception_policy.posture_policies:
        if not (policy.framework_name or policy.control_name or policy.rule_name):
            continue  # an empty policy matches nothing
        if policy.framework_name and policy.framework_name != framework_name:
            continue
        if policy.control_name and policy.control_name != control_name:
            continue
        if policy.rule_name and policy.rule_name != rule_name:
            continue
        return True
    return False


def list_rule_exceptions(
    exception_policies: Iterable[PostureExceptionPolicy],
    framework_name: str,
    control_name: str,
    rule_name: str,
) -> list[PostureExceptionPolicy]:
    """Return the exception policies that apply to the given rule."""
    return [
        policy
        for policy in exception_policies
        if _rule_has_exceptions(policy, framework_name, control_name, rule_name)
    ]


def _alert_object_to_workloads(alert_object: AlertObject) -> list[Workload]:
    workloads = (Workload.from_object(obj) for obj in alert_object.k8s_api_objects)
    return [w for w in workloads if w is not None]


def add_exceptions_to_rule_responses(
    results: Iterable[RuleResponse],
    rule_exceptions: Sequence[PostureExceptionPolicy],
) -> None:
    """Attach matching exceptions to each response and refresh its status."""
    if not rule_exceptions:
        return
    for result in results:
        workloads = _alert_object_to_workloads(result.alert_object)
        if not workloads:
            continue
        for workload in workloads:
            exception = get_exception(rule_exceptions, workload)
            if exception is not None:
                result.exception = exception
        result.rule_status = result.get_single_result_status()


def get_exception(
    rule_exceptions: Iterable[PostureExceptionPolicy], workload: Workload
) -> PostureExceptionPolicy | None:
    """Return the first exception with a designator matching ``workload``."""
    for exception in rule_exceptions:
        if any(has_exception(designator, workload) for designator in exception.resources):
            return exception
    return None


def has_exception(designator: PortalDesignator, workload: Workload) -> bool:
    """Whether ``designator`` selects ``workload``; an empty designator selects nothing."""
    cluster, namespace, kind, name, labels = designator.digest()
    if not (cluster or namespace or kind or name or labels):
        return False
    if namespace and not _compare_namespace(workload, namespace):
        return False
    if kind and kind != workload.kind:
        return False
    if name and name != workload.name:
        return False
    if labels and not _compare_labels(workload, labels):
        return False
    return True


def _compare_namespace(workload: Workload, namespace: str) -> bool:
    if workload.kind == "Namespace":
        return namespace == workload.name
    return namespace == workload.namespace


def _compare_labels(workload: Workload, selector: Mapping[str, str]) -> bool:
    workload_labels = workload.labels
    return all(
        key in workload_labels and workload_labels[key] == value
        for key, value in selector.items()
    )