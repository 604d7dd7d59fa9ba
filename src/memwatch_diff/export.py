"""Delivery of an analysis result: report files, webhook, exit code."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import httpx

from memwatch_diff.models import AnalysisResult
from memwatch_diff.render import format_text_report

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_SUSPICIOUS = 1


class WebhookError(RuntimeError):
    """The webhook endpoint could not be reached or rejected the report."""


def result_to_json(result: AnalysisResult, indent: int | None = 2) -> str:
    """Serialize a result; infinite growth rates become ``"Infinity"``."""
    return result.model_dump_json(indent=indent)


def report_stamp(moment: datetime | None = None) -> str:
    """Filesystem-safe timestamp used in report file names."""
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat().replace(":", "-").replace(".", "-")


def write_reports(
    result: AnalysisResult, output_dir: Path, *, stamp: str | None = None
) -> tuple[Path, Path]:
    """Write the JSON report and the plain text summary side by side.

    Returns:
        (json_path, summary_path)
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = stamp or report_stamp()

    json_path = output_dir / f"leak-report-{stamp}.json"
    summary_path = output_dir / f"leak-summary-{stamp}.txt"

    json_path.write_text(result_to_json(result), encoding="utf-8")
    summary_path.write_text(format_text_report(result), encoding="utf-8")
    logger.debug("Wrote %s and %s", json_path, summary_path)
    return json_path, summary_path


def send_webhook(
    result: AnalysisResult,
    url: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = 10.0,
) -> int:
    """POST the result as JSON to a monitoring endpoint.

    Returns:
        The HTTP status code of the accepted request.

    Raises:
        WebhookError: on transport failure or a non-2xx response.
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        response = http.post(
            url,
            content=result_to_json(result, indent=None),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise WebhookError(f"Webhook failed: {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise WebhookError(f"Webhook failed: {e}") from e
    finally:
        if owns_client:
            http.close()

    logger.debug("Webhook %s accepted report (%d)", url, response.status_code)
    return response.status_code


def exit_code_for(result: AnalysisResult) -> int:
    """Process exit code for a finished analysis."""
    return EXIT_SUSPICIOUS if result.summary.suspicious_growth else EXIT_CLEAN
