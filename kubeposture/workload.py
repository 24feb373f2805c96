"""Kubernetes objects as workloads, and clean-up of raw rule results."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from kubeposture.policy import RuleMatchObjects, RuleResponse

LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"


class RegoResultError(ValueError):
    """Some rule results could not be parsed; the rest are in ``responses``."""

    def __init__(self, messages: list[str], responses: list[RuleResponse]):
        super().__init__("\n".join(messages))
        self.messages = messages
        self.responses = responses


@dataclass
class Workload:
    """A Kubernetes API object held as a plain mapping."""

    obj: dict[str, Any]

    @classmethod
    def from_object(cls, obj: Any) -> Workload | None:
        """Wrap ``obj`` if it looks like a Kubernetes API object, else ``None``."""
        if not isinstance(obj, dict):
            return None
        if not isinstance(obj.get("apiVersion"), str) or not isinstance(obj.get("kind"), str):
            return None
        return cls(obj)

    @property
    def _metadata(self) -> Mapping[str, Any]:
        metadata = self.obj.get("metadata")
        return metadata if isinstance(metadata, Mapping) else {}

    @property
    def api_version(self) -> str:
        return self.obj.get("apiVersion", "")

    @property
    def kind(self) -> str:
        return self.obj.get("kind", "")

    @property
    def name(self) -> str:
        return self._metadata.get("name") or ""

    @property
    def namespace(self) -> str:
        return self._metadata.get("namespace") or ""

    @property
    def labels(self) -> dict[str, str]:
        return dict(self._metadata.get("labels") or {})

    @property
    def group(self) -> str:
        group, _, version = self.api_version.rpartition("/")
        return group

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def replicas(self) -> int:
        spec = self.obj.get("spec")
        if isinstance(spec, Mapping) and isinstance(spec.get("replicas"), int):
            return spec["replicas"]
        return 0

    def resource_id(self) -> str:
        return f"{self.api_version}/{self.namespace}/{self.kind}/{self.name}"

    def remove_secret_data(self) -> None:
        """Drop secret payloads, including the copy kept in annotations."""
        self.obj.pop("data", None)
        self.obj.pop("stringData", None)
        annotations = self._metadata.get("annotations")
        if isinstance(annotations, dict):
            annotations.pop(LAST_APPLIED_ANNOTATION, None)


def edit_rule_responses(rule_responses: Iterable[RuleResponse]) -> list[RuleResponse]:
    """Drop responses about already reported resources and clear secret data."""
    seen: set[str] = set()
    kept: list[RuleResponse] = []
    for response in rule_responses:
        duplicate = False
        for obj in response.alert_object.k8s_api_objects:
            workload = Workload.from_object(obj)
            if workload is None:
                continue
            resource_id = workload.resource_id()
            if resource_id in seen:
                duplicate = True
                break
            if workload.kind == "Secret":
                workload.remove_secret_data()
            seen.add(resource_id)
        if not duplicate:
            kept.append(response)
    return kept


def _string_to_bool(value: Any) -> bool:
    return str(value).strip().lower() in {"true", "1", "t", "yes", "y"}


def rule_with_armo_opa_dependency(attributes: Mapping[str, Any] | None) -> bool:
    """Whether a rule's attributes mark it as needing the ARMO OPA runtime."""
    if not attributes or "armoOpa" not in attributes:
        return False
    return _string_to_bool(attributes["armoOpa"])


def list_match_kinds(match: Iterable[RuleMatchObjects]) -> list[str]:
    return [resource for m in match for resource in m.resources]


def parse_rego_result(result_set: Iterable[Mapping[str, Any]]) -> list[RuleResponse]:
    """Collect rule responses from a rego result set.

    Each result holds ``expressions``; each expression ``value`` that is a
    mapping holds, per rule, a list of response objects. Raises
    :class:`RegoResultError`, carrying the parsed responses, if any entry
    could not be read.
    """
    responses: list[RuleResponse] = []
    messages: list[str] = []
    for result in result_set:
        for expression in result.get("expressions") or []:
            value = expression.get("value") if isinstance(expression, Mapping) else None
            if not isinstance(value, Mapping):
                continue
            for obj_name, obj in value.items():
                try:
                    if obj is None:
                        continue
                    if not isinstance(obj, list):
                        raise TypeError(f"expected a list, got {type(obj).__name__}")
                    parsed = [RuleResponse() if item is None else RuleResponse.from_dict(item) for item in obj]
                except (TypeError, ValueError) as err:
                    messages.append(
                        f"in parseRegoResult, json.Unmarshal failed. name: {obj_name}, "
                        f"obj: {obj}, reason: {err}"
                    )
                    continue
                responses.extend(parsed)
    if messages:
        raise RegoResultError(messages, responses)
    return responses