"""JUnit XML rendering of posture reports."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from kubeposture.policy import PostureReport

SUITES_NAME = "Kubescape scan results"
CLASSNAME = "Kubescape"


@dataclass
class JUnitFailure:
    message: str = ""
    type: str = ""
    contents: str = ""


@dataclass
class JUnitTestCase:
    classname: str = ""
    name: str = ""
    time: str = ""
    skip_message: str | None = None
    failure: JUnitFailure | None = None


@dataclass
class JUnitTestSuite:
    name: str = ""
    tests: int = 0
    failures: int = 0
    time: str = ""
    properties: dict[str, str] = field(default_factory=dict)
    test_cases: list[JUnitTestCase] = field(default_factory=list)


@dataclass
class JUnitTestSuites:
    suites: list[JUnitTestSuite] = field(default_factory=list)
    name: str = SUITES_NAME

    def to_xml(self) -> str:
        root = ET.Element("testsuites", {"name": self.name})
        for suite in self.suites:
            suite_el = ET.SubElement(
                root,
                "testsuite",
                {
                    "tests": str(suite.tests),
                    "failures": str(suite.failures),
                    "time": suite.time,
                    "name": suite.name,
                },
            )
            if suite.properties:
                props = ET.SubElement(suite_el, "properties")
                for key, value in suite.properties.items():
                    ET.SubElement(props, "property", {"name": key, "value": value})
            for case in suite.test_cases:
                case_el = ET.SubElement(
                    suite_el,
                    "testcase",
                    {"classname": case.classname, "name": case.name, "time": case.time},
                )
                if case.skip_message is not None:
                    ET.SubElement(case_el, "skipped", {"message": case.skip_message})
                if case.failure is not None:
                    failure_el = ET.SubElement(
                        case_el,
                        "failure",
                        {"message": case.failure.message, "type": case.failure.type},
                    )
                    failure_el.text = case.failure.contents
        return ET.tostring(root, encoding="unicode")


def posture_report_to_junit(posture_report: PostureReport) -> JUnitTestSuites:
    """One suite per framework, one test case per control.

    A control fails when its first rule report has responses.
    """
    result = JUnitTestSuites()
    for framework in posture_report.framework_reports:
        suite = JUnitTestSuite(name=framework.name)
        for control in framework.control_reports:
            suite.tests += 1
            case = JUnitTestCase(classname=CLASSNAME, name=control.name, time="0")
            responses = control.rule_reports[0].rule_responses if control.rule_reports else []
            if responses:
                suite.failures += 1
                case.failure = JUnitFailure(
                    message=f"{len(responses)} resources failed",
                    contents="".join(f"\n{r.alert_message}" for r in responses),
                )
            suite.test_cases.append(case)
        result.suites.append(suite)
    return result