import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from kubeposture.loader import (
    FileFormat,
    download_file,
    download_files,
    get_file_format,
    glob_files,
    list_files,
    list_urls,
    load_files,
    load_workloads,
    read_file,
    read_json,
    read_yaml,
)

DEPLOYMENT_YAML = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: frontend
  namespace: shop
spec:
  replicas: 1
---
apiVersion: v1
kind: Service
metadata:
  name: frontend-svc
  namespace: shop
"""

POD_JSON = {
    "apiVersion": "v1",
    "kind": "Pod",
    "metadata": {"name": "cart", "namespace": "default"},
}

SERVICE_NAMES = [
    "adservice", "cartservice", "checkoutservice", "currencyservice",
    "emailservice", "frontend", "loadgenerator", "paymentservice",
    "productcatalogservice", "recommendationservice", "redis", "shippingservice",
]


@pytest.fixture
def boutique(tmp_path):
    directory = tmp_path / "online-boutique"
    directory.mkdir()
    for name in SERVICE_NAMES:
        (directory / f"{name}.yaml").write_text(
            f"apiVersion: v1\nkind: Service\nmetadata:\n  name: {name}\n  namespace: shop\n"
        )
    return directory


@pytest.fixture
def server():
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            if self.path == "/deploy.yaml":
                body = DEPLOYMENT_YAML.encode()
                self.send_response(200)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
            else:
                self.send_response(404)
                self.send_header("Content-Length", "0")
                self.end_headers()

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()


def test_list_files_finds_all_boutique_files(boutique):
    files, errors = list_files([str(boutique / "*")])
    assert errors == []
    assert len(files) == 12


def test_list_files_single_file(boutique):
    files, errors = list_files([str(boutique / "redis.yaml")])
    assert errors == []
    assert files == [str(boutique / "redis.yaml")]


def test_list_files_relative_pattern(boutique, monkeypatch):
    monkeypatch.chdir(boutique.parent)
    files, errors = list_files(["online-boutique/*.yaml"])
    assert errors == []
    assert len(files) == 12


def test_list_files_skips_urls_and_reports_missing_dirs(tmp_path):
    files, errors = list_files(["http://example.com/a.yaml", str(tmp_path / "missing" / "*")])
    assert files == []
    assert len(errors) == 1
    assert isinstance(errors[0], OSError)


def test_glob_files_recurses_in_sorted_order(tmp_path):
    (tmp_path / "b.yaml").write_text("x: 1")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "a.yaml").write_text("x: 1")
    (tmp_path / "c.txt").write_text("x")
    assert glob_files(str(tmp_path), "*.yaml") == [
        str(tmp_path / "b.yaml"),
        str(tmp_path / "sub" / "a.yaml"),
    ]


def test_glob_files_missing_root_raises(tmp_path):
    with pytest.raises(OSError):
        glob_files(str(tmp_path / "nope"), "*")


def test_load_files_reads_every_file(boutique):
    files, _ = list_files([str(boutique / "*")])
    workloads, errors = load_files(files)
    assert errors == []
    assert sorted(w.name for w in workloads) == sorted(SERVICE_NAMES)


def test_load_files_reports_unreadable_file(tmp_path):
    workloads, errors = load_files([str(tmp_path / "absent.yaml")])
    assert workloads == []
    assert len(errors) == 1


@pytest.mark.parametrize(
    "path, expected",
    [
        ("a.yaml", FileFormat.YAML),
        ("dir/a.yml", FileFormat.YAML),
        ("a.json", FileFormat.JSON),
        ("a.txt", None),
        ("README", None),
    ],
)
def test_get_file_format(path, expected):
    assert get_file_format(path) == expected


def test_read_yaml_multiple_documents():
    workloads, errors = read_yaml(DEPLOYMENT_YAML)
    assert errors == []
    assert [(w.kind, w.name, w.namespace) for w in workloads] == [
        ("Deployment", "frontend", "shop"),
        ("Service", "frontend-svc", "shop"),
    ]


def test_read_yaml_stops_at_malformed_document():
    content = "apiVersion: v1\nkind: Pod\nmetadata:\n  name: p\n---\nkey: [unclosed\n"
    workloads, errors = read_yaml(content)
    assert [w.name for w in workloads] == ["p"]
    assert errors == []


def test_read_yaml_scalar_document_is_an_error():
    workloads, errors = read_yaml("just a string\n")
    assert workloads == []
    assert len(errors) == 1


def test_read_yaml_skips_empty_documents():
    workloads, errors = read_yaml("---\n---\napiVersion: v1\nkind: Pod\nmetadata:\n  name: q\n")
    assert [w.name for w in workloads] == ["q"]
    assert errors == []


def test_read_json_nested_lists():
    workloads, errors = read_json(json.dumps([POD_JSON, [POD_JSON], 3]))
    assert errors == []
    assert [w.kind for w in workloads] == ["Pod", "Pod"]


def test_read_json_invalid():
    workloads, errors = read_json(b"{not json")
    assert workloads == []
    assert len(errors) == 1


def test_read_file_dispatches_on_format():
    yaml_workloads, _ = read_file(DEPLOYMENT_YAML, FileFormat.YAML)
    json_workloads, _ = read_file(json.dumps(POD_JSON), FileFormat.JSON)
    other, errors = read_file(DEPLOYMENT_YAML, None)
    assert len(yaml_workloads) == 2
    assert [w.name for w in json_workloads] == ["cart"]
    assert (other, errors) == ([], [])


def test_list_urls():
    patterns = ["http://example.com/x.yaml", "file.yaml", "https://example.com/y.json"]
    assert list_urls(patterns) == ["http://example.com/x.yaml", "https://example.com/y.json"]


def test_download_file(server):
    assert download_file(f"{server}/deploy.yaml") == DEPLOYMENT_YAML.encode()


def test_download_file_bad_status(server):
    with pytest.raises(OSError, match="status code: 404"):
        download_file(f"{server}/missing.yaml")


def test_download_files_collects_errors(server):
    workloads, errors = download_files([f"{server}/deploy.yaml", f"{server}/missing.yaml"])
    assert [w.kind for w in workloads] == ["Deployment", "Service"]
    assert len(errors) == 1


def test_load_workloads_from_files_and_urls(boutique, server):
    workloads = load_workloads([str(boutique / "redis.yaml"), f"{server}/deploy.yaml"])
    assert [w.name for w in workloads] == ["redis", "frontend", "frontend-svc"]


def test_load_workloads_empty_raises(tmp_path):
    with pytest.raises(ValueError, match="no workloads found"):
        load_workloads([str(tmp_path / "*.yaml")])