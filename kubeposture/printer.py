"""Rendering scan results as text, JSON or JUnit XML."""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any, TextIO

from tabulate import tabulate

from kubeposture.junit import posture_report_to_junit
from kubeposture.policy import PostureReport
from kubeposture.summary import ControlSummary, group_by_namespace, list_result_summary

INDENT = "   "
EMPTY_PERCENTAGE = "NaN"

_CONFUSED_FACE = "\U0001F615"
_SAD_BUT_RELIEVED_FACE = "\U0001F625"
_NEUTRAL_FACE = "\U0001F610"
_THUMBS_UP = "\U0001F44D"


class OutputFormat(str, Enum):
    PRETTY_PRINTER = "pretty-printer"
    JSON = "json"
    JUNIT = "junit"


def calculate_posture_score(posture_report: PostureReport) -> float:
    """Fraction of input resources that did not fail; 0 when there are none."""
    total_resources = 0
    total_failed = 0
    for framework in posture_report.framework_reports:
        for control in framework.control_reports:
            for rule_report in control.rule_reports:
                for response in rule_report.rule_responses:
                    total_failed += len(response.alert_object.k8s_api_objects)
                    total_failed += len(response.alert_object.external_objects)
            total_resources += control.number_of_resources()
    if total_resources == 0:
        return 0.0
    return (total_resources - total_failed) / total_resources


def percentage(big: int, small: int) -> int:
    """Whole percent of ``big`` that is not ``small``."""
    if big == 0:
        return 100 if small == 0 else 0
    return int((big - small) / big * 100)


def generate_header() -> list[str]:
    return ["Control Name", "Failed Resources", "Warning Resources", "All Resources", "% success"]


def generate_row(control: str, summary: ControlSummary) -> list[str]:
    row = [control, *summary.to_row()]
    if summary.total_resources:
        row.append(f"{percentage(summary.total_resources, summary.total_failed)}%")
    else:
        row.append(EMPTY_PERCENTAGE)
    return row


def generate_footer(num_controls: int, sum_failed: int, sum_warning: int, sum_total: int) -> list[str]:
    row = [str(num_controls), str(sum_failed), str(sum_warning), str(sum_total)]
    if sum_total:
        row.append(f"{percentage(sum_total, sum_failed)}%")
    else:
        row.append(EMPTY_PERCENTAGE)
    return row


class Printer:
    """Writes a posture report in the chosen format to a stream or file."""

    def __init__(
        self,
        printer_type: str = OutputFormat.PRETTY_PRINTER,
        output_file: str = "",
        writer: TextIO | None = None,
        silent: bool = False,
    ):
        self.printer_type = str(getattr(printer_type, "value", printer_type))
        self.silent = silent
        self.summary: dict[str, ControlSummary] = {}
        self.sorted_control_names: list[str] = []
        self._owns_writer = False
        if writer is not None:
            self.writer: TextIO = writer
        elif output_file:
            try:
                self.writer = open(output_file, "a", encoding="utf-8")
                self._owns_writer = True
            except OSError:
                print("Error opening file", file=sys.stderr)
                self.writer = sys.stdout
        else:
            self.writer = sys.stdout

    def close(self) -> None:
        if self._owns_writer:
            self.writer.close()
            self._owns_writer = False

    def __enter__(self) -> Printer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _write(self, text: str) -> None:
        self.writer.write(text)

    def action_print(self, posture_report: PostureReport) -> float:
        """Write the report and return its posture score.

        Raises ValueError for an unknown format unless the printer is silent,
        and for JSON output of a report without frameworks.
        """
        if self.printer_type == OutputFormat.PRETTY_PRINTER.value:
            self.summary_setup(posture_report)
            self.print_results()
            self.print_summary_table()
        elif self.printer_type == OutputFormat.JSON.value:
            if not posture_report.framework_reports:
                raise ValueError("Failed to convert posture report object!")
            self._write(json.dumps(posture_report.framework_reports[0].to_dict()))
        elif self.printer_type == OutputFormat.JUNIT.value:
            self._write(posture_report_to_junit(posture_report).to_xml())
        elif not self.silent:
            raise ValueError("unknown output printer")
        self.writer.flush()
        return calculate_posture_score(posture_report)

    def summary_setup(self, posture_report: PostureReport) -> None:
        for framework in posture_report.framework_reports:
            for control in framework.control_reports:
                if not control.rule_reports:
                    continue
                workloads = list_result_summary(control.rule_reports)
                self.summary[control.name] = ControlSummary(
                    total_resources=control.number_of_resources(),
                    total_failed=control.number_of_failed_resources(),
                    total_warning=control.number_of_warning_resources(),
                    description=control.description,
                    remediation=control.remediation,
                    list_input_kinds=control.list_input_kinds(),
                    workload_summary=group_by_namespace(workloads),
                )
        self.sorted_control_names = sorted(self.summary)

    def print_results(self) -> None:
        for name in self.sorted_control_names:
            summary = self.summary[name]
            self._print_title(name, summary)
            self._print_result(summary)
            if summary.total_resources > 0:
                self._print_summary(summary)

    def _print_summary(self, summary: ControlSummary) -> None:
        self._write("Summary - ")
        self._write(f"Passed:{summary.total_resources - summary.total_failed}   ")
        self._write(f"Warning:{summary.total_warning}   ")
        self._write(f"Failed:{summary.total_failed}   ")
        self._write(f"Total:{summary.total_resources}\n")
        if summary.total_failed > 0:
            self._write(f"Remediation: {summary.remediation}\n")
        self._write("\n")

    def _print_title(self, name: str, summary: ControlSummary) -> None:
        self._write(f"[control: {name}] ")
        if summary.total_resources == 0 and summary.list_input_kinds:
            self._write(f"resources not found {_CONFUSED_FACE}\n")
        elif summary.total_failed:
            self._write(f"failed {_SAD_BUT_RELIEVED_FACE}\n")
        elif summary.total_warning:
            self._write(f"warning {_NEUTRAL_FACE}\n")
        else:
            self._write(f"passed {_THUMBS_UP}\n")
        self._write(f"Description: {summary.description}\n")

    def _print_result(self, summary: ControlSummary) -> None:
        for namespace, resources in summary.workload_summary.items():
            if namespace:
                self._write(f"{INDENT}Namespace {namespace}\n")
            for resource in resources:
                self._write(f"{INDENT * 2}{resource.kind} - {resource.name}\n")

    def print_summary_table(self) -> None:
        rows = [generate_row(name, self.summary[name]) for name in self.sorted_control_names]
        summaries = [self.summary[name] for name in self.sorted_control_names]
        footer = generate_footer(
            len(self.summary),
            sum(s.total_failed for s in summaries),
            sum(s.total_warning for s in summaries),
            sum(s.total_resources for s in summaries),
        )
        table = tabulate(
            rows + [[cell.upper() for cell in footer]],
            headers=[h.upper() for h in generate_header()],
            tablefmt="psql",
            stralign="left",
            disable_numparse=True,
        )
        lines = table.splitlines()
        if rows:
            lines.insert(len(lines) - 2, lines[0])
        self._write("\n".join(lines) + "\n")