"""Weighted posture scores for frameworks and controls."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from kubeposture.policy import ControlReport, FrameworkReport
from kubeposture.workload import Workload

FRAMEWORK_SCORES_FILE = "frameworkdict.json"
RESOURCE_SCORES_FILE = "resourcesdict.json"
_EPSILON = 0.00001


@dataclass
class ControlScoreWeights:
    base_score: float = 0.0
    runtime_improvement_multiplier: float = 0.0


def _config_file(weight_path: str, name: str) -> Path:
    return Path(weight_path) / name if weight_path else Path(name)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except (OSError, ValueError):
        return None


def load_framework_scores(weight_path: str) -> dict[str, dict[str, ControlScoreWeights]]:
    """Read per-framework control weights; empty if missing or malformed."""
    data = _read_json(_config_file(weight_path, FRAMEWORK_SCORES_FILE))
    if not isinstance(data, Mapping):
        return {}
    try:
        return {
            framework: {
                control: ControlScoreWeights(
                    base_score=float(weights.get("baseScore", 0)),
                    runtime_improvement_multiplier=float(weights.get("improvementRatio", 0)),
                )
                for control, weights in controls.items()
            }
            for framework, controls in data.items()
        }
    except (AttributeError, TypeError, ValueError):
        return {}


def load_resource_scores(weight_path: str) -> dict[str, float]:
    """Read per-kind resource weights; empty if missing or malformed."""
    data = _read_json(_config_file(weight_path, RESOURCE_SCORES_FILE))
    if not isinstance(data, Mapping):
        return {}
    try:
        return {str(kind): float(weight) for kind, weight in data.items()}
    except (TypeError, ValueError):
        return {}


@dataclass
class ScoreUtil:
    """Computes control and framework scores from configured weights."""

    resource_type_scores: dict[str, float] = field(default_factory=dict)
    frameworks_score: dict[str, dict[str, ControlScoreWeights]] = field(default_factory=dict)
    config_path: str = ""

    @classmethod
    def from_config(cls, config_path: str) -> ScoreUtil:
        return cls(
            resource_type_scores=load_resource_scores(config_path),
            frameworks_score=load_framework_scores(config_path),
            config_path=config_path,
        )

    def calculate(self, framework_reports: Iterable[FrameworkReport]) -> None:
        """Score every framework; frameworks without weight are left unscaled."""
        for framework in framework_reports:
            try:
                self.calculate_framework_score(framework)
            except ValueError:
                continue

    def calculate_framework_score(self, framework: FrameworkReport) -> None:
        """Fill in the framework's scores.

        Raises ValueError when the total weight of the inputs is not positive.
        """
        for control in framework.control_reports:
            framework.wcs_score += self.control_score(control, framework.name)
            framework.score += control.score
            framework.armo_improvement += control.armo_improvement
        if framework.wcs_score <= 0:
            raise ValueError(
                f"unable to calculate score for framework {framework.name} due to bad wcs score"
            )
        framework.score = framework.score * 100 / framework.wcs_score
        framework.armo_improvement = framework.armo_improvement * 100 / framework.wcs_score

    def _weight(self, kind: str) -> float:
        return self.resource_type_scores.get(kind, 0.0)

    def resource_rules(self, resources: Iterable[Mapping[str, Any]]) -> float:
        """Sum the weights of ``resources``.

        Workloads weigh by kind, scaled by replica count; daemonsets by the
        number of scheduled nodes. Other objects weigh by their first key,
        defaulting to 1.
        """
        weight = 0.0
        for resource in resources:
            workload = Workload.from_object(resource)
            if workload is not None:
                kind = workload.kind.lower()
                score = self._weight(kind)
                replicas = workload.replicas
                if replicas > 1:
                    score *= self._weight("replicaset") * replicas
            else:
                kind = next(iter(resource), "")
                score = self._weight(kind)
                if -_EPSILON < score < _EPSILON:
                    score = 1.0
            if kind == "daemonset":
                status = resource.get("status")
                scheduled = status.get("desiredNumberScheduled") if isinstance(status, Mapping) else None
                score *= scheduled if isinstance(scheduled, int) else 0
            weight += score
        return weight

    @staticmethod
    def _external_resources(external: Mapping[str, Any]) -> list[dict[str, Any]]:
        return [{kind: value} for kind, value in external.items()]

    def control_score(self, ctrl_report: ControlReport, framework_name: str) -> float:
        """Set the control's score fields and return the weight of its inputs."""
        inputs: list[dict[str, Any]] = []
        responses: list[Mapping[str, Any]] = []
        for rule_report in ctrl_report.rule_reports:
            status, _, _ = rule_report.get_rule_status()
            if status != "warning":
                for response in rule_report.rule_responses:
                    responses.extend(response.alert_object.k8s_api_objects)
                    responses.extend(self._external_resources(response.alert_object.external_objects))
            inputs.extend(rule_report.list_input_resources)

        improvement_ratio = 1.0
        controls = self.frameworks_score.get(framework_name)
        if controls is not None:
            weights = controls.get(ctrl_report.name)
            if weights is not None:
                ctrl_report.base_score = weights.base_score
                improvement_ratio -= weights.runtime_improvement_multiplier
        else:
            ctrl_report.base_score = 1.0

        ctrl_report.score = ctrl_report.base_score * self.resource_rules(responses)
        ctrl_report.armo_improvement = ctrl_report.score * improvement_ratio
        return ctrl_report.base_score * self.resource_rules(inputs)