"""Per-control summaries of failed workloads, grouped for display."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from kubeposture.exception_policy import PostureExceptionPolicy
from kubeposture.policy import AlertObject, RuleReport
from kubeposture.workload import Workload


@dataclass
class WorkloadSummary:
    """The identity of one reported workload."""

    kind: str = ""
    name: str = ""
    namespace: str = ""
    group: str = ""
    exception: PostureExceptionPolicy | None = None

    def key(self) -> str:
        return f"/{self.group}/{self.namespace}/{self.kind}/{self.name}"

    @classmethod
    def from_object(cls, obj: Any) -> WorkloadSummary:
        """Summarise a Kubernetes API object; raise ValueError for anything else."""
        workload = Workload.from_object(obj)
        if workload is None:
            raise ValueError("expecting k8s API object")
        return cls(kind=workload.kind, name=workload.name, namespace=workload.namespace)


@dataclass
class ControlSummary:
    """Counts and failed workloads of one control."""

    total_resources: int = 0
    total_failed: int = 0
    total_warning: int = 0
    description: str = ""
    remediation: str = ""
    list_input_kinds: list[str] = field(default_factory=list)
    workload_summary: dict[str, list[WorkloadSummary]] = field(default_factory=dict)

    def to_row(self) -> list[str]:
        return [str(self.total_failed), str(self.total_warning), str(self.total_resources)]


def group_by_namespace(resources: Iterable[WorkloadSummary]) -> dict[str, list[WorkloadSummary]]:
    """Group workloads by namespace, keeping their order."""
    grouped: dict[str, list[WorkloadSummary]] = {}
    for resource in resources:
        grouped.setdefault(resource.namespace, []).append(resource)
    return grouped


def rule_result_summary(alert_object: AlertObject) -> list[WorkloadSummary]:
    """Summarise every API object of an alert; raise ValueError on a non-workload."""
    return [WorkloadSummary.from_object(obj) for obj in alert_object.k8s_api_objects]


def list_result_summary(rule_reports: Iterable[RuleReport]) -> list[WorkloadSummary]:
    """List each failed workload once, carrying the exception of its response.

    Responses holding objects that are not workloads are reported on stderr
    and skipped.
    """
    seen: set[str] = set()
    summaries: list[WorkloadSummary] = []
    for rule_report in rule_reports:
        for response in rule_report.rule_responses:
            try:
                resources = rule_result_summary(response.alert_object)
            except ValueError as err:
                print(err, file=sys.stderr)
                continue
            for resource in resources:
                resource.exception = response.exception
                key = resource.key()
                if key not in seen:
                    seen.add(key)
                    summaries.append(resource)
    return summaries


def _is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)