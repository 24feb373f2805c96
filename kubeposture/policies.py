"""Fetching frameworks and exception policies through policy getters."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from kubeposture.exception_policy import PostureExceptionPolicy
from kubeposture.policy import Framework, NotificationKind, PolicyNotification


class PolicyGetter(Protocol):
    def get_framework(self, name: str) -> Framework: ...

    def get_exceptions(self, customer_guid: str, cluster_name: str) -> list[PostureExceptionPolicy]: ...


class PolicyFetchError(Exception):
    """Some policies could not be fetched; what was fetched is kept."""

    def __init__(
        self,
        message: str,
        frameworks: Iterable[Framework] = (),
        exceptions: Iterable[PostureExceptionPolicy] = (),
    ):
        super().__init__(message)
        self.frameworks = list(frameworks)
        self.exceptions = list(exceptions)


def get_framework_policies(
    policy_name: str, policy_getter: Any, exceptions_getter: Any
) -> tuple[Framework, list[PostureExceptionPolicy]]:
    """Fetch one framework and the exception policies.

    Raises PolicyFetchError; when only the exceptions failed, the framework
    is carried in the error.
    """
    try:
        framework = policy_getter.get_framework(policy_name)
    except Exception as err:
        raise PolicyFetchError(str(err)) from err
    try:
        exceptions = exceptions_getter.get_exceptions("", "")
    except Exception as err:
        raise PolicyFetchError(str(err), frameworks=[framework]) from err
    return framework, list(exceptions or [])


def get_policies_from_backend(
    notification: PolicyNotification, policy_getter: Any, exceptions_getter: Any
) -> tuple[list[Framework], list[PostureExceptionPolicy]]:
    """Fetch every framework the notification names, with its exceptions.

    Raises PolicyFetchError carrying the partial results if anything failed.
    """
    frameworks: list[Framework] = []
    exception_policies: list[PostureExceptionPolicy] = []
    messages: list[str] = []
    for rule in notification.rules:
        if rule.kind == NotificationKind.FRAMEWORK:
            try:
                framework, exceptions = get_framework_policies(
                    rule.name, policy_getter, exceptions_getter
                )
            except PolicyFetchError as err:
                kind = getattr(rule.kind, "value", rule.kind)
                messages.append(f"Kind: {kind}, Name: {rule.name}, error: {err}")
                frameworks.extend(err.frameworks)
                continue
            frameworks.append(framework)
            exception_policies.extend(exceptions)
        else:
            messages = [f"missing rule kind, expected: {NotificationKind.FRAMEWORK.value}"]
    if messages:
        raise PolicyFetchError("\n".join(messages), frameworks, exception_policies)
    return frameworks, exception_policies