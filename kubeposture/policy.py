"""Frameworks, controls, rules and the reports produced by running them."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from kubeposture.exception_policy import PortalDesignator, PostureExceptionPolicy

POSTURE_REST_API_PATH_V1 = "/v1/posture"
POSTURE_REDIS_PREFIX = "_postureReportv1"
K8S_POSTURE_NOTIFICATION = "/k8srestapi/v1/newPostureReport"

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_WARNING = "warning"
STATUS_IGNORE = "ignore"


class RuleLanguage(str, Enum):
    REGO = "Rego"
    REGO_LOWER = "rego"


class NotificationType(str, Enum):
    VALIDATE_RULES = "validateRules"
    EXEC_POSTURE_SCAN = "execPostureScan"
    UPDATE_RULES = "updateRules"


class NotificationKind(str, Enum):
    FRAMEWORK = "Framework"
    CONTROL = "Control"
    RULE = "Rule"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what}: expected an object, got {type(data).__name__}")
    return data


def _typed(data: Mapping[str, Any], key: str, kinds: tuple[type, ...], default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kinds):
        raise TypeError(f"field {key!r} has unexpected type {type(value).__name__}")
    return value


def _str(data: Mapping[str, Any], key: str) -> str:
    return _typed(data, key, (str,), "")


def _strings(data: Mapping[str, Any], key: str) -> list[str]:
    values = _typed(data, key, (list,), [])
    if not all(isinstance(v, str) for v in values):
        raise TypeError(f"field {key!r} must hold strings")
    return list(values)


@dataclass
class AlertObject:
    k8s_api_objects: list[dict[str, Any]] = field(default_factory=list)
    external_objects: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> AlertObject:
        data = _mapping(data, "alert object")
        objects = _typed(data, "k8sApiObjects", (list,), [])
        if not all(isinstance(obj, Mapping) for obj in objects):
            raise TypeError("field 'k8sApiObjects' must hold objects")
        external = _typed(data, "externalObjects", (Mapping,), {})
        return cls(k8s_api_objects=[dict(obj) for obj in objects], external_objects=dict(external))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.k8s_api_objects:
            data["k8sApiObjects"] = list(self.k8s_api_objects)
        if self.external_objects:
            data["externalObjects"] = dict(self.external_objects)
        return data


@dataclass
class RuleResponse:
    """The outcome of one rule evaluation against one set of objects."""

    alert_message: str = ""
    rule_status: str = ""
    package_name: str = ""
    alert_score: float = 0.0
    alert_object: AlertObject = field(default_factory=AlertObject)
    context: list[str] = field(default_factory=list)
    rulename: str = ""
    exception_name: str = ""
    exception: PostureExceptionPolicy | None = None

    def get_single_result_status(self) -> str:
        if self.exception is not None:
            if self.exception.is_alert_only():
                return STATUS_WARNING
            if self.exception.is_disable():
                return STATUS_IGNORE
        return STATUS_FAILED

    @classmethod
    def from_dict(cls, data: Any) -> RuleResponse:
        data = _mapping(data, "rule response")
        exception = data.get("exception")
        return cls(
            alert_message=_str(data, "alertMessage"),
            rule_status=_str(data, "ruleStatus"),
            package_name=_str(data, "packagename"),
            alert_score=float(_typed(data, "alertScore", (int, float), 0.0)),
            alert_object=AlertObject.from_dict(data.get("alertObject") or {}),
            context=_strings(data, "context"),
            rulename=_str(data, "rulename"),
            exception_name=_str(data, "exceptionName"),
            exception=None if exception is None else PostureExceptionPolicy.from_dict(exception),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "alertMessage": self.alert_message,
            "ruleStatus": self.rule_status,
            "packagename": self.package_name,
            "alertScore": self.alert_score,
            "alertObject": self.alert_object.to_dict(),
        }
        if self.context:
            data["context"] = list(self.context)
        if self.rulename:
            data["rulename"] = self.rulename
        if self.exception_name:
            data["exceptionName"] = self.exception_name
        if self.exception is not None:
            data["exception"] = self.exception.to_dict()
        return data


@dataclass
class RuleStatus:
    status: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message}


@dataclass
class RuleReport:
    name: str = ""
    remediation: str = ""
    rule_status: RuleStatus = field(default_factory=RuleStatus)
    rule_responses: list[RuleResponse] = field(default_factory=list)
    list_input_resources: list[dict[str, Any]] = field(default_factory=list)
    list_input_kinds: list[str] = field(default_factory=list)

    def get_rule_status(self) -> tuple[str, list[RuleResponse], list[RuleResponse]]:
        """Return ``(status, failed responses, excepted responses)``."""
        if not self.rule_responses:
            return STATUS_SUCCESS, [], []
        exceptions = [r for r in self.rule_responses if r.exception_name or r.exception is not None]
        failed = [r for r in self.rule_responses if not (r.exception_name or r.exception is not None)]
        status = STATUS_WARNING if not failed and exceptions else STATUS_FAILED
        return status, failed, exceptions

    def number_of_resources(self) -> int:
        return len(self.list_input_resources)

    def number_of_failed_resources(self) -> int:
        return sum(1 for r in self.rule_responses if r.get_single_result_status() == STATUS_FAILED)

    def number_of_warning_resources(self) -> int:
        return sum(1 for r in self.rule_responses if r.get_single_result_status() == STATUS_WARNING)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "remediation": self.remediation,
            "ruleStatus": self.rule_status.to_dict(),
            "ruleResponses": [r.to_dict() for r in self.rule_responses],
        }


@dataclass
class ControlReport:
    name: str = ""
    rule_reports: list[RuleReport] = field(default_factory=list)
    remediation: str = ""
    description: str = ""
    score: float = 0.0
    base_score: float = 0.0
    armo_improvement: float = 0.0
    guid: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    def number_of_resources(self) -> int:
        return sum(r.number_of_resources() for r in self.rule_reports)

    def number_of_failed_resources(self) -> int:
        return sum(r.number_of_failed_resources() for r in self.rule_reports)

    def number_of_warning_resources(self) -> int:
        return sum(r.number_of_warning_resources() for r in self.rule_reports)

    def list_input_kinds(self) -> list[str]:
        return [kind for r in self.rule_reports for kind in r.list_input_kinds]

    def passed(self) -> bool:
        return any(not r.rule_responses for r in self.rule_reports)

    def failed(self) -> bool:
        if self.passed():
            return False
        return any(r.get_rule_status()[0] == STATUS_FAILED for r in self.rule_reports)

    def warning(self) -> bool:
        if self.passed() or self.failed():
            return False
        return any(r.get_rule_status()[0] == STATUS_WARNING for r in self.rule_reports)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.guid:
            data["guid"] = self.guid
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        data.update(
            {
                "name": self.name,
                "ruleReports": [r.to_dict() for r in self.rule_reports],
                "remediation": self.remediation,
                "description": self.description,
            }
        )
        if self.score:
            data["score"] = self.score
        if self.base_score:
            data["baseScore"] = self.base_score
        if self.armo_improvement:
            data["ARMOImprovement"] = self.armo_improvement
        return data


@dataclass
class FrameworkReport:
    name: str = ""
    control_reports: list[ControlReport] = field(default_factory=list)
    score: float = 0.0
    armo_improvement: float = 0.0
    wcs_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "controlReports": [c.to_dict() for c in self.control_reports],
        }
        if self.score:
            data["score"] = self.score
        if self.armo_improvement:
            data["ARMOImprovement"] = self.armo_improvement
        if self.wcs_score:
            data["wcsScore"] = self.wcs_score
        return data


@dataclass
class PostureReport:
    customer_guid: str = ""
    cluster_name: str = ""
    report_id: str = ""
    job_id: str = ""
    report_generation_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    framework_reports: list[FrameworkReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        moment = self.report_generation_time
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        stamp = moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return {
            "customerGUID": self.customer_guid,
            "clusterName": self.cluster_name,
            "reportID": self.report_id,
            "jobID": self.job_id,
            "generationTime": stamp,
            "frameworks": [f.to_dict() for f in self.framework_reports],
        }


@dataclass
class RuleMatchObjects:
    """Which API groups, versions and resources a rule applies to."""

    api_groups: list[str] = field(default_factory=list)
    api_versions: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> RuleMatchObjects:
        data = _mapping(data, "rule match")
        return cls(
            api_groups=_strings(data, "apiGroups"),
            api_versions=_strings(data, "apiVersions"),
            resources=_strings(data, "resources"),
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "apiGroups": list(self.api_groups),
            "apiVersions": list(self.api_versions),
            "resources": list(self.resources),
        }


@dataclass
class PolicyRule:
    """A single executable rule."""

    name: str = ""
    guid: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    creation_time: str = ""
    rule: str = ""
    rule_language: str = RuleLanguage.REGO.value
    match: list[RuleMatchObjects] = field(default_factory=list)
    rule_dependencies: list[str] = field(default_factory=list)
    description: str = ""
    remediation: str = ""
    rule_query: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> PolicyRule:
        data = _mapping(data, "rule")
        return cls(
            name=_str(data, "name"),
            guid=_str(data, "guid"),
            attributes=dict(_typed(data, "attributes", (Mapping,), {})),
            creation_time=_str(data, "creationTime"),
            rule=_str(data, "rule"),
            rule_language=_str(data, "ruleLanguage"),
            match=[RuleMatchObjects.from_dict(m) for m in data.get("match") or []],
            rule_dependencies=[
                _str(_mapping(d, "rule dependency"), "packageName")
                for d in data.get("ruleDependencies") or []
            ],
            description=_str(data, "description"),
            remediation=_str(data, "remediation"),
            rule_query=_str(data, "ruleQuery"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.guid:
            data["guid"] = self.guid
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        data.update(
            {
                "creationTime": self.creation_time,
                "rule": self.rule,
                "ruleLanguage": str(getattr(self.rule_language, "value", self.rule_language)),
                "match": [m.to_dict() for m in self.match],
                "ruleDependencies": [{"packageName": d} for d in self.rule_dependencies],
                "description": self.description,
                "remediation": self.remediation,
                "ruleQuery": self.rule_query,
            }
        )
        return data


@dataclass
class Control:
    """A set of rules serving one purpose."""

    name: str = ""
    guid: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    creation_time: str = ""
    description: str = ""
    remediation: str = ""
    rules: list[PolicyRule] = field(default_factory=list)
    rules_ids: list[str] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Control:
        data = _mapping(data, "control")
        rules_ids = data.get("rulesIDs")
        return cls(
            name=_str(data, "name"),
            guid=_str(data, "guid"),
            attributes=dict(_typed(data, "attributes", (Mapping,), {})),
            creation_time=_str(data, "creationTime"),
            description=_str(data, "description"),
            remediation=_str(data, "remediation"),
            rules=[PolicyRule.from_dict(r) for r in data.get("rules") or []],
            rules_ids=None if rules_ids is None else _strings(data, "rulesIDs"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.guid:
            data["guid"] = self.guid
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        data.update(
            {
                "creationTime": self.creation_time,
                "description": self.description,
                "remediation": self.remediation,
                "rules": [r.to_dict() for r in self.rules],
            }
        )
        if self.rules_ids is not None:
            data["rulesIDs"] = list(self.rules_ids)
        return data


@dataclass
class Framework:
    """A collection of controls."""

    name: str = ""
    guid: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    creation_time: str = ""
    description: str = ""
    controls: list[Control] = field(default_factory=list)
    controls_ids: list[str] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Framework:
        data = _mapping(data, "framework")
        controls_ids = data.get("controlsIDs")
        return cls(
            name=_str(data, "name"),
            guid=_str(data, "guid"),
            attributes=dict(_typed(data, "attributes", (Mapping,), {})),
            creation_time=_str(data, "creationTime"),
            description=_str(data, "description"),
            controls=[Control.from_dict(c) for c in data.get("controls") or []],
            controls_ids=None if controls_ids is None else _strings(data, "controlsIDs"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.guid:
            data["guid"] = self.guid
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        data.update(
            {
                "creationTime": self.creation_time,
                "description": self.description,
                "controls": [c.to_dict() for c in self.controls],
            }
        )
        if self.controls_ids is not None:
            data["controlsIDs"] = list(self.controls_ids)
        return data


@dataclass
class PolicyIdentifier:
    kind: NotificationKind = NotificationKind.FRAMEWORK
    name: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"kind": str(getattr(self.kind, "value", self.kind)), "name": self.name}


@dataclass
class PolicyNotification:
    notification_type: NotificationType = NotificationType.EXEC_POSTURE_SCAN
    rules: list[PolicyIdentifier] = field(default_factory=list)
    report_id: str = ""
    job_id: str = ""
    designators: PortalDesignator = field(default_factory=PortalDesignator)

    def to_json(self) -> str:
        return json.dumps(
            {
                "notificationType": str(
                    getattr(self.notification_type, "value", self.notification_type)
                ),
                "rules": [r.to_dict() for r in self.rules],
                "reportID": self.report_id,
                "jobID": self.job_id,
                "designators": self.designators.to_dict(),
            }
        )