"""Tests for report files, webhook delivery and exit codes."""

import json

import httpx
import pytest

from memwatch_diff.config import AnalysisConfig
from memwatch_diff.engine import analyze_snapshots
from memwatch_diff.export import (
    EXIT_CLEAN,
    EXIT_SUSPICIOUS,
    WebhookError,
    exit_code_for,
    report_stamp,
    result_to_json,
    send_webhook,
    write_reports,
)
from memwatch_diff.models import AnalysisMetadata
from memwatch_diff.render import format_text_report

ONE_MIB = 1024 * 1024


@pytest.fixture
def leak_result(leak_pair):
    metadata = AnalysisMetadata(container_id="api-1", image="api:1.0", delay_minutes=15)
    return analyze_snapshots(*leak_pair, AnalysisConfig(threshold_bytes=ONE_MIB), metadata)


@pytest.fixture
def appeared_result(snapshot_data, write_snapshot):
    before = write_snapshot(snapshot_data({"Object": (1, 100)}))
    after = write_snapshot(snapshot_data({"Object": (1, 100), "Session": (10, 2_000_000)}))
    return analyze_snapshots(before, after)


class TestResultToJson:
    def test_structure(self, leak_result):
        payload = json.loads(result_to_json(leak_result))
        assert set(payload) == {"before", "after", "offenders", "deltas", "summary", "metadata"}
        assert payload["summary"]["suspicious_growth"] is True
        assert payload["summary"]["likely_leak_source"] == "Array"
        assert payload["offenders"][0]["severity"] == "critical"
        assert payload["metadata"]["container_id"] == "api-1"

    def test_infinite_growth_serializes_as_string(self, appeared_result):
        payload = json.loads(result_to_json(appeared_result))
        session = next(o for o in payload["offenders"] if o["type_name"] == "Session")
        assert session["growth_rate"] == "Infinity"


class TestWriteReports:
    def test_writes_json_and_summary(self, leak_result, tmp_path):
        output_dir = tmp_path / "reports" / "nested"
        json_path, summary_path = write_reports(leak_result, output_dir, stamp="2024-01-01T00-00-00")

        assert json_path.name == "leak-report-2024-01-01T00-00-00.json"
        assert summary_path.name == "leak-summary-2024-01-01T00-00-00.txt"
        assert json.loads(json_path.read_text())["summary"]["likely_leak_source"] == "Array"
        assert "MEMORY LEAK DETECTION REPORT" in summary_path.read_text()

    def test_stamp_is_filesystem_safe(self):
        stamp = report_stamp()
        assert ":" not in stamp
        assert "." not in stamp


class TestSendWebhook:
    def test_posts_json(self, leak_result):
        received = {}

        def handler(request):
            received["method"] = request.method
            received["content_type"] = request.headers["content-type"]
            received["body"] = json.loads(request.content)
            return httpx.Response(204)

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            status = send_webhook(leak_result, "https://hooks.example.com/leaks", client=client)

        assert status == 204
        assert received["method"] == "POST"
        assert received["content_type"] == "application/json"
        assert received["body"]["summary"]["suspicious_growth"] is True

    def test_error_status_raises(self, leak_result):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        with httpx.Client(transport=transport) as client:
            with pytest.raises(WebhookError, match="500"):
                send_webhook(leak_result, "https://hooks.example.com/leaks", client=client)

    def test_transport_error_raises(self, leak_result):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(WebhookError, match="connection refused"):
                send_webhook(leak_result, "https://hooks.example.com/leaks", client=client)


class TestExitCode:
    def test_suspicious(self, leak_result):
        assert exit_code_for(leak_result) == EXIT_SUSPICIOUS

    def test_clean(self, appeared_result):
        assert exit_code_for(appeared_result) == EXIT_CLEAN


class TestTextReport:
    def test_layout(self, leak_result):
        text = format_text_report(leak_result)
        assert "Container: api-1" in text
        assert "Delay Period: 15 minutes" in text
        assert "Suspicious Growth: YES" in text
        assert "Likely Source: Array" in text
        assert "POTENTIAL MEMORY LEAK DETECTED" in text
        assert "Array: +9.44 MB (1900 objects) [critical]" in text

    def test_clean_status(self, appeared_result):
        text = format_text_report(appeared_result)
        assert "Suspicious Growth: NO" in text
        assert "NO SIGNIFICANT MEMORY GROWTH" in text
