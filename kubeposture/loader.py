"""Loading Kubernetes objects from local files and URLs."""

from __future__ import annotations

import fnmatch
import json
import os
import sys
import urllib.error
import urllib.request
from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from kubeposture.workload import Workload

YAML_EXTENSIONS = (".yaml", ".yml")
JSON_EXTENSIONS = (".json",)
URL_PREFIX = "http"
DOWNLOAD_TIMEOUT = 30.0


class FileFormat(str, Enum):
    YAML = "yaml"
    JSON = "json"


def get_file_format(file_path: str) -> FileFormat | None:
    """Guess the format from the extension; None when it is not supported."""
    extension = os.path.splitext(file_path)[1]
    if extension in YAML_EXTENSIONS:
        return FileFormat.YAML
    if extension in JSON_EXTENSIONS:
        return FileFormat.JSON
    return None


def _walk_files(root: Path) -> Iterator[Path]:
    if not root.is_dir() or root.is_symlink():
        root.lstat()  # raise for a root that does not exist
        yield root
        return
    for entry in sorted(root.iterdir(), key=lambda path: path.name):
        if entry.is_dir() and not entry.is_symlink():
            yield from _walk_files(entry)
        else:
            yield entry


def glob_files(root: str, pattern: str) -> list[str]:
    """Files under ``root``, recursively, whose base name matches ``pattern``.

    Raises OSError when ``root`` cannot be walked.
    """
    return [
        str(path)
        for path in _walk_files(Path(root or "."))
        if fnmatch.fnmatchcase(path.name, pattern)
    ]


def list_files(patterns: Iterable[str]) -> tuple[list[str], list[Exception]]:
    """Expand local glob patterns; URLs are skipped.

    Relative patterns are taken from the current directory. Returns the
    matched files and the errors met while walking.
    """
    files: list[str] = []
    errors: list[Exception] = []
    for pattern in patterns:
        if pattern.startswith(URL_PREFIX):
            continue
        if not os.path.isabs(pattern):
            pattern = os.path.join(os.getcwd(), pattern)
        root, base = os.path.split(pattern)
        try:
            files.extend(glob_files(root, base))
        except OSError as err:
            errors.append(err)
    return files, errors


def list_urls(patterns: Iterable[str]) -> list[str]:
    """The patterns that are URLs."""
    return [pattern for pattern in patterns if pattern.startswith(URL_PREFIX)]


def _string_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _string_keys(item) for key, item in value.items() if isinstance(key, str)}
    if isinstance(value, list):
        return [_string_keys(item) for item in value]
    return value


def _add_workload(obj: dict[str, Any], workloads: list[Workload]) -> None:
    workload = Workload.from_object(obj)
    if workload is not None:
        workloads.append(workload)


def read_yaml(content: bytes | str) -> tuple[list[Workload], list[Exception]]:
    """Read every YAML document; reading stops at the first malformed one."""
    workloads: list[Workload] = []
    errors: list[Exception] = []
    documents = yaml.safe_load_all(content)
    while True:
        try:
            document = next(documents)
        except StopIteration:
            break
        except yaml.YAMLError:
            break
        document = _string_keys(document)
        if document is None:
            continue
        if isinstance(document, dict):
            _add_workload(document, workloads)
        else:
            errors.append(
                ValueError(f"failed to convert yaml document to an object, content: {document}")
            )
    return workloads, errors


def _collect_json(value: Any, workloads: list[Workload]) -> None:
    if isinstance(value, dict):
        _add_workload(value, workloads)
    elif isinstance(value, list):
        for item in value:
            _collect_json(item, workloads)


def read_json(content: bytes | str) -> tuple[list[Workload], list[Exception]]:
    """Read objects from JSON, descending into nested lists."""
    try:
        data = json.loads(content)
    except ValueError as err:
        return [], [err]
    workloads: list[Workload] = []
    _collect_json(data, workloads)
    return workloads, []


def read_file(
    content: bytes | str, file_format: FileFormat | None
) -> tuple[list[Workload], list[Exception]]:
    """Read content in the given format; unsupported formats yield nothing."""
    if file_format == FileFormat.YAML:
        return read_yaml(content)
    if file_format == FileFormat.JSON:
        return read_json(content)
    return [], []


def load_files(file_paths: Iterable[str]) -> tuple[list[Workload], list[Exception]]:
    """Read every file, collecting the workloads and the errors."""
    workloads: list[Workload] = []
    errors: list[Exception] = []
    for file_path in file_paths:
        try:
            content = Path(file_path).read_bytes()
        except OSError as err:
            errors.append(err)
            continue
        found, problems = read_file(content, get_file_format(file_path))
        workloads.extend(found)
        errors.extend(problems)
    return workloads, errors


def download_file(url: str) -> bytes:
    """Fetch ``url``; raise OSError unless the status is between 200 and 301."""
    try:
        with urllib.request.urlopen(url, timeout=DOWNLOAD_TIMEOUT) as response:
            status = response.status
            reason = response.reason
            body = response.read()
    except urllib.error.HTTPError as err:
        raise OSError(
            f"failed to download file, url: '{url}', status code: {err.code} {err.reason}"
        ) from err
    if not 200 <= status <= 301:
        raise OSError(f"failed to download file, url: '{url}', status code: {status} {reason}")
    return body


def download_files(urls: Iterable[str]) -> tuple[list[Workload], list[Exception]]:
    """Download and read every URL, collecting the workloads and the errors."""
    workloads: list[Workload] = []
    errors: list[Exception] = []
    for url in urls:
        try:
            content = download_file(url)
        except OSError as err:
            errors.append(err)
            continue
        found, problems = read_file(content, get_file_format(url))
        workloads.extend(found)
        errors.extend(problems)
    return workloads, errors


def _report(errors: list[Exception]) -> None:
    if errors:
        print("; ".join(str(err) for err in errors), file=sys.stderr)


def load_workloads(input_patterns: Iterable[str]) -> list[Workload]:
    """Load workloads from local glob patterns and URLs.

    Problems with single files are reported on stderr. Raises ValueError
    when nothing at all was loaded.
    """
    patterns = list(input_patterns)
    workloads: list[Workload] = []

    files, errors = list_files(patterns)
    _report(errors)
    if files:
        found, errors = load_files(files)
        _report(errors)
        workloads.extend(found)

    urls = list_urls(patterns)
    if urls:
        found, errors = download_files(urls)
        _report(errors)
        workloads.extend(found)

    if not workloads:
        raise ValueError("empty list of workloads - no workloads found")
    return workloads