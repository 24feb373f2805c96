# kubeposture

`kubeposture` is a library for evaluating the security posture of
Kubernetes workloads. It reads resource manifests from YAML or JSON files,
glob patterns or URLs. It works out which resources a framework's rules need
and applies posture exception policies to rule results. It then scores
controls and frameworks and writes the results as a text summary, as JSON or
as JUnit XML.

## Modules

- `kubeposture.policy`: the policy model (`Framework`, `Control`,
  `PolicyRule`, `RuleMatchObjects`) and the reports built from it
  (`PostureReport`, `FrameworkReport`, `ControlReport`, `RuleReport`,
  `RuleResponse`, `AlertObject`). `Framework.from_dict` and
  `RuleResponse.from_dict` read the JSON shapes. `RuleReport.get_rule_status()`
  returns `(status, failed, excepted)`. `ControlReport` has `passed()`,
  `failed()`, `warning()` and resource counters.
- `kubeposture.exception_policy`: `PostureExceptionPolicy`,
  `PosturePolicy`, `PortalDesignator` and the `ExceptionAction` values
  `alertOnly` and `disable`.
- `kubeposture.exceptions`: `list_rule_exceptions` picks the policies that
  apply to a framework, control or rule. `add_exceptions_to_rule_responses`
  attaches the matching exception to each response, matching by namespace,
  kind, name and labels, and refreshes the response's status.
- `kubeposture.workload`: `Workload` wraps a Kubernetes object held as a
  dict. `edit_rule_responses` drops responses about resources already
  reported and strips secret data. `parse_rego_result` turns an
  already-evaluated result set into `RuleResponse` objects and raises
  `RegoResultError` on bad entries.
- `kubeposture.resource_map`: `complex_resource_map` builds a
  group → version → resource map of everything the frameworks' rules match.
- `kubeposture.policies`: `get_policies_from_backend` and
  `get_framework_policies` fetch frameworks and exceptions through getter
  objects that you supply. A getter must have `get_framework(name)` and
  `get_exceptions(customer_guid, cluster_name)`. Failures raise
  `PolicyFetchError`, which carries whatever was fetched.
- `kubeposture.loader`: `load_workloads` loads from local patterns and
  `http(s)` URLs, plus lower-level helpers (`list_files`, `glob_files`,
  `read_yaml`, `read_json`, `download_file`, …).
- `kubeposture.score`: `ScoreUtil` computes weighted control and framework
  scores.
- `kubeposture.summary`, `kubeposture.printer`, `kubeposture.junit`: the
  per-control summaries, the `Printer` output class, `calculate_posture_score`
  and JUnit conversion.
- `kubeposture.reporter`: `ReportEventReceiver` posts a `PostureReport` as
  JSON over HTTP.
- `kubeposture.strutils`: label-string helpers.

## Usage

Label strings:

```python
from kubeposture.strutils import convert_string_to_labels, convert_labels_to_string

labels = convert_string_to_labels("a=b;c=d")   # {"a": "b", "c": "d"}
convert_labels_to_string(labels)               # "a=b;c=d"
```

Loading workloads. Relative patterns are taken from the current directory,
and a pattern's base name is matched against files under its directory,
recursively. Problems with single files are printed on stderr. A
`ValueError` is raised if nothing is loaded.

```python
from kubeposture.loader import load_workloads

workloads = load_workloads(["manifests/*.yaml", "https://example.com/app.json"])
```

Choosing the exceptions that apply to a rule:

```python
from kubeposture.exceptions import list_rule_exceptions

matching = list_rule_exceptions(exception_policies, "MITRE", "", "")
```

Scoring and output:

```python
import sys

from kubeposture.junit import posture_report_to_junit
from kubeposture.printer import Printer, calculate_posture_score
from kubeposture.score import ScoreUtil

scorer = ScoreUtil.from_config("resources/config")
scorer.calculate(posture_report.framework_reports)

score = calculate_posture_score(posture_report)   # share of input resources that did not fail
xml_text = posture_report_to_junit(posture_report).to_xml()

with Printer("pretty-printer", writer=sys.stdout) as printer:
    printer.action_print(posture_report)
```

`Printer` takes the formats `pretty-printer`, `json` (the first framework
report) and `junit`. Given `output_file`, it appends to that file. An
unknown format raises `ValueError` unless the printer is silent.

## Scoring configuration

`ScoreUtil.from_config` reads two JSON files from the given directory:

- `resourcesdict.json`: a weight for each resource kind, in lower case, for
  example `{"deployment": 1.0, "replicaset": 0.5, "daemonset": 2.0}`.
- `frameworkdict.json`: control weights for each framework, in the form
  `{"<framework>": {"<control>": {"baseScore": 1.0, "improvementRatio": 0.2}}}`.

If a file is missing or cannot be read, that table is left empty.

## Sending reports

`ReportEventReceiver(customer_guid, cluster_name)` posts to the URL built by
`event_receiver_url`. That URL's host comes from the `KUBEPOSTURE_REPORT_HOST`
environment variable and defaults to `localhost`. `send` raises
`ReportError` on failure. `send_if_registered` sends only when a customer
GUID is set, and prints failures on stderr.

## What it does not do

- It has no command-line program. It is used as a library.
- It does not connect to a live cluster. Workloads come from files or URLs
  that you name.
- It does not evaluate Rego rules. `parse_rego_result` only reads results
  that were produced elsewhere.
- It ships no policy getters. Frameworks and exceptions come from the
  objects you pass to `kubeposture.policies`.

## Tests

The test suite uses pytest. The test dependencies are in the `test` extra.