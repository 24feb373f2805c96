"""Posture exception policies and the designators that select resources."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DESIGNATOR_ATTRIBUTES = "Attributes"
ATTRIBUTE_CLUSTER = "cluster"
ATTRIBUTE_NAMESPACE = "namespace"
ATTRIBUTE_KIND = "kind"
ATTRIBUTE_NAME = "name"


class ExceptionAction(str, Enum):
    """What an exception does to a matching result."""

    ALERT_ONLY = "alertOnly"
    DISABLE = "disable"


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what}: expected an object, got {type(data).__name__}")
    return data


@dataclass
class PortalDesignator:
    """Selects resources by cluster, namespace, kind, name and labels."""

    designator_type: str = DESIGNATOR_ATTRIBUTES
    attributes: dict[str, str] = field(default_factory=dict)

    def digest(self) -> tuple[str, str, str, str, dict[str, str]]:
        """Return ``(cluster, namespace, kind, name, labels)``.

        Only attribute designators select anything; other types digest to
        empty values.
        """
        if self.designator_type.lower() != DESIGNATOR_ATTRIBUTES.lower():
            return "", "", "", "", {}
        labels = dict(self.attributes)
        cluster = labels.pop(ATTRIBUTE_CLUSTER, "")
        namespace = labels.pop(ATTRIBUTE_NAMESPACE, "")
        kind = labels.pop(ATTRIBUTE_KIND, "")
        name = labels.pop(ATTRIBUTE_NAME, "")
        return cluster, namespace, kind, name, labels

    @classmethod
    def from_dict(cls, data: Any) -> PortalDesignator:
        data = _require_mapping(data, "designator")
        return cls(
            designator_type=data.get("designatorType") or DESIGNATOR_ATTRIBUTES,
            attributes={str(k): str(v) for k, v in (data.get("attributes") or {}).items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {"designatorType": self.designator_type, "attributes": dict(self.attributes)}


@dataclass
class PosturePolicy:
    """Names the framework, control or rule an exception applies to."""

    framework_name: str = ""
    control_name: str = ""
    rule_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> PosturePolicy:
        data = _require_mapping(data, "posture policy")
        return cls(
            framework_name=data.get("frameworkName") or "",
            control_name=data.get("controlName") or "",
            rule_name=data.get("ruleName") or "",
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "frameworkName": self.framework_name,
            "controlName": self.control_name,
            "ruleName": self.rule_name,
        }


@dataclass
class PostureExceptionPolicy:
    """An exception: which policies and resources it covers, and its actions."""

    name: str = ""
    guid: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)
    policy_type: str = ""
    creation_time: str = ""
    actions: list[ExceptionAction] = field(default_factory=list)
    resources: list[PortalDesignator] = field(default_factory=list)
    posture_policies: list[PosturePolicy] = field(default_factory=list)

    def is_disable(self) -> bool:
        return ExceptionAction.DISABLE in self.actions

    def is_alert_only(self) -> bool:
        if self.is_disable():
            return False
        return ExceptionAction.ALERT_ONLY in self.actions

    @classmethod
    def from_dict(cls, data: Any) -> PostureExceptionPolicy:
        data = _require_mapping(data, "exception policy")
        return cls(
            name=data.get("name") or "",
            guid=data.get("guid") or "",
            attributes=dict(data.get("attributes") or {}),
            policy_type=data.get("policyType") or "",
            creation_time=data.get("creationTime") or "",
            actions=[ExceptionAction(action) for action in data.get("actions") or []],
            resources=[PortalDesignator.from_dict(r) for r in data.get("resources") or []],
            posture_policies=[
                PosturePolicy.from_dict(p) for p in data.get("posturePolicies") or []
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.guid:
            data["guid"] = self.guid
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        data.update(
            {
                "policyType": self.policy_type,
                "creationTime": self.creation_time,
                "actions": [action.value for action in self.actions],
                "resources": [r.to_dict() for r in self.resources],
                "posturePolicies": [p.to_dict() for p in self.posture_policies],
            }
        )
        return data