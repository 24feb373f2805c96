"""The API groups, versions and resources that frameworks need."""

from __future__ import annotations

from collections.abc import Iterable

from kubeposture.policy import Framework, RuleMatchObjects

ResourceMap = dict[str, dict[str, dict[str, None]]]


def insert_k8s_resources(k8s_resources: ResourceMap, match: RuleMatchObjects) -> None:
    """Add every group/version/resource combination of ``match`` in place."""
    for api_group in match.api_groups:
        versions = k8s_resources.setdefault(api_group, {})
        for api_version in match.api_versions:
            resources = versions.setdefault(api_version, {})
            for resource in match.resources:
                resources.setdefault(resource, None)


def complex_resource_map(frameworks: Iterable[Framework]) -> ResourceMap:
    """Map group -> version -> resource for every rule match in ``frameworks``."""
    k8s_resources: ResourceMap = {}
    for framework in frameworks:
        for control in framework.controls:
            for rule in control.rules:
                for match in rule.match:
                    insert_k8s_resources(k8s_resources, match)
    return k8s_resources