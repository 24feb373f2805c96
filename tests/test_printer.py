import io
import json

import pytest

from kubeposture.junit import posture_report_to_junit
from kubeposture.policy import (
    AlertObject,
    ControlReport,
    FrameworkReport,
    PostureReport,
    RuleReport,
    RuleResponse,
)
from kubeposture.printer import (
    EMPTY_PERCENTAGE,
    OutputFormat,
    Printer,
    calculate_posture_score,
    generate_footer,
    generate_header,
    generate_row,
    percentage,
)
from kubeposture.summary import ControlSummary


def _pod(name, namespace="default"):
    return {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": name, "namespace": namespace}}


def _report():
    pods = [_pod("a"), _pod("b")]
    bad_rule = RuleReport(
        name="r1",
        rule_responses=[
            RuleResponse(alert_message="pod a bad", alert_object=AlertObject(k8s_api_objects=[pods[0]]))
        ],
        list_input_resources=pods,
    )
    clean_rule = RuleReport(name="r2", list_input_resources=pods)
    control_bad = ControlReport(
        name="Fail", rule_reports=[bad_rule], remediation="fix it", description="desc"
    )
    control_ok = ControlReport(name="Ok", rule_reports=[clean_rule], description="fine")
    return PostureReport(
        framework_reports=[FrameworkReport(name="nsa", control_reports=[control_bad, control_ok])]
    )


def test_percentage_edges():
    assert percentage(0, 0) == 100
    assert percentage(0, 5) == 0
    assert percentage(10, 3) == 70


def test_header_is_fixed():
    assert generate_header() == [
        "Control Name",
        "Failed Resources",
        "Warning Resources",
        "All Resources",
        "% success",
    ]


def test_row_without_resources_is_nan():
    row = generate_row("C", ControlSummary(total_failed=0))
    assert row == ["C", "0", "0", "0", EMPTY_PERCENTAGE]


def test_row_with_resources_has_percentage():
    row = generate_row("C", ControlSummary(total_resources=4, total_failed=1))
    assert row[:4] == ["C", "1", "0", "4"]
    assert row[4] == f"{percentage(4, 1)}%"


def test_footer_empty_total():
    assert generate_footer(2, 0, 0, 0) == ["2", "0", "0", "0", "NaN"]


def test_posture_score_empty_report():
    assert calculate_posture_score(PostureReport()) == 0.0


def test_posture_score_counts_failures():
    assert calculate_posture_score(_report()) == pytest.approx(0.75)


def test_summary_setup_builds_sorted_summary():
    printer = Printer(writer=io.StringIO())
    printer.summary_setup(_report())
    assert printer.sorted_control_names == ["Fail", "Ok"]
    fail = printer.summary["Fail"]
    assert (fail.total_resources, fail.total_failed) == (2, 1)
    assert [w.name for w in fail.workload_summary["default"]] == ["a"]


def test_pretty_output_mentions_controls():
    out = io.StringIO()
    printer = Printer(OutputFormat.PRETTY_PRINTER, writer=out)
    score = printer.action_print(_report())
    text = out.getvalue()
    assert "[control: Fail] failed" in text
    assert "[control: Ok] passed" in text
    assert "Namespace default" in text
    assert "Pod - a" in text
    assert "Remediation: fix it" in text
    assert "Remediation: fine" not in text
    assert score == calculate_posture_score(_report())


def test_summary_table_is_bordered():
    out = io.StringIO()
    printer = Printer(writer=out)
    printer.summary_setup(_report())
    printer.print_summary_table()
    lines = out.getvalue().splitlines()
    assert all(line[0] in "+|" for line in lines)
    assert any("Fail" in line for line in lines)


def test_json_output_is_first_framework():
    out = io.StringIO()
    report = _report()
    Printer(OutputFormat.JSON, writer=out).action_print(report)
    assert json.loads(out.getvalue()) == report.framework_reports[0].to_dict()


def test_json_output_without_frameworks_raises():
    with pytest.raises(ValueError):
        Printer("json", writer=io.StringIO()).action_print(PostureReport())


def test_junit_output():
    out = io.StringIO()
    report = _report()
    Printer("junit", writer=out).action_print(report)
    assert out.getvalue() == posture_report_to_junit(report).to_xml()


def test_unknown_format_raises_unless_silent():
    with pytest.raises(ValueError, match="unknown output printer"):
        Printer("yaml", writer=io.StringIO()).action_print(_report())
    out = io.StringIO()
    score = Printer("yaml", writer=out, silent=True).action_print(_report())
    assert out.getvalue() == ""
    assert score == calculate_posture_score(_report())


def test_output_file_is_appended(tmp_path):
    path = tmp_path / "out.json"
    path.write_text("x", encoding="utf-8")
    report = _report()
    with Printer("json", output_file=str(path)) as printer:
        printer.action_print(report)
    content = path.read_text(encoding="utf-8")
    assert content.startswith("x")
    assert json.loads(content[1:]) == report.framework_reports[0].to_dict()