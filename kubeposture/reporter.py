"""Sending posture reports to a report receiver over HTTP."""

from __future__ import annotations

import json
import os
import sys
import uuid
import urllib.error
import urllib.request
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from kubeposture.policy import PostureReport

REPORT_HOST_ENV = "KUBEPOSTURE_REPORT_HOST"
REPORT_PATH = "/k8s/postureReport"


class ReportError(Exception):
    """A report could not be delivered."""


def _sorted_query(pairs: list[tuple[str, str]]) -> str:
    return urlencode(sorted(pairs, key=lambda pair: pair[0]))


def host_to_string(host: str, report_id: str) -> str:
    """Return ``host`` with ``reportID`` added to its query, keys sorted."""
    parts = urlsplit(host)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if report_id:
        query.append(("reportID", report_id))
    path = parts.path
    if parts.netloc and path and not path.startswith("/"):
        path = "/" + path
    return urlunsplit((parts.scheme, parts.netloc, path, _sorted_query(query), parts.fragment))


def _guid_or_nil(customer_guid: str) -> str:
    try:
        return str(uuid.UUID(customer_guid))
    except (ValueError, TypeError):
        return str(uuid.UUID(int=0))


def event_receiver_url(customer_guid: str, cluster_name: str) -> str:
    """Build the receiver URL for a customer and cluster.

    The host is taken from the ``KUBEPOSTURE_REPORT_HOST`` environment
    variable, or ``localhost``.
    """
    netloc = os.environ.get(REPORT_HOST_ENV) or "localhost"
    query = _sorted_query([("customerGUID", _guid_or_nil(customer_guid)), ("clusterName", cluster_name)])
    return urlunsplit(("https", netloc, REPORT_PATH, query, ""))


class ReportEventReceiver:
    """Posts posture reports to the receiver endpoint."""

    def __init__(
        self,
        customer_guid: str = "",
        cluster_name: str = "",
        url: str | None = None,
        timeout: float = 30.0,
    ):
        self.customer_guid = customer_guid
        self.cluster_name = cluster_name
        self.url = url or event_receiver_url(customer_guid, cluster_name)
        self.timeout = timeout

    def send(self, posture_report: PostureReport) -> str:
        """Post the report and return the response body; raise ReportError on failure."""
        body = json.dumps(posture_report.to_dict()).encode()
        target = host_to_string(self.url, posture_report.report_id)
        request = urllib.request.Request(target, data=body, method="POST")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                content = response.read().decode(errors="replace")
                status = response.status
        except urllib.error.HTTPError as err:
            content = err.read().decode(errors="replace")
            raise ReportError(
                f"{target}, response status: {err.code}. Content: {content}"
            ) from err
        except (urllib.error.URLError, OSError) as err:
            raise ReportError(f"httpClient.Do failed: {err}") from err
        if not 200 <= status < 300:
            raise ReportError(f"{target}, response status: {status}. Content: {content}")
        return content

    def send_if_registered(self, posture_report: PostureReport) -> bool:
        """Send only when a customer GUID is set; report failures on stderr."""
        if not self.customer_guid:
            return False
        try:
            self.send(posture_report)
        except ReportError as err:
            print(err, file=sys.stderr)
            return False
        return True