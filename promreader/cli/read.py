"""Remote read client commands for promreader."""

import re
import time
from typing import List, Optional

import httpx
import typer

from promreader.cli.output import OUTPUT_FORMATS, print_error, print_info, render
from promreader.exceptions import PromReaderError
from promreader.logging_config import get_logger
from promreader.remote import prompb
from promreader.remote.converter import parse_timestamp_ms
from promreader.remote.parser import PrometheusReadParser
from promreader.remote.protocol import PrometheusRemoteRead

app = typer.Typer(help="Query a remote read endpoint")
logger = get_logger(__name__)

_MATCHER = re.compile(r"^\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*(=~|!~|!=|=)\s*(.*?)\s*$")

_MATCHER_TYPES = {
    "=": prompb.LabelMatcher.EQ,
    "!=": prompb.LabelMatcher.NEQ,
    "=~": prompb.LabelMatcher.RE,
    "!~": prompb.LabelMatcher.NRE,
}


def parse_matcher(expression: str) -> prompb.LabelMatcher:
    """Parse ``name=value``, ``name!=value``, ``name=~re`` or ``name!~re``.

    Surrounding double quotes around the value are removed.

    Raises:
        ValueError: If the expression is not a label matcher
    """
    match = _MATCHER.match(expression)
    if match is None:
        raise ValueError(f"Invalid label matcher: {expression!r}")

    name, op, value = match.groups()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]

    return prompb.LabelMatcher(type=_MATCHER_TYPES[op], name=name, value=value)


def parse_time_ms(value: str, now_ms: int) -> int:
    """Parse ``now``, epoch milliseconds or an RFC3339 timestamp.

    Raises:
        ValueError: If the value is none of these
    """
    if value == "now":
        return now_ms
    if value.lstrip("-").isdigit():
        return int(value)
    return parse_timestamp_ms(value)


def build_read_request(
    matchers: list[prompb.LabelMatcher], start_ms: int, end_ms: int
) -> prompb.ReadRequest:
    """Build a single-query ReadRequest asking for raw samples."""
    read_request = prompb.ReadRequest()
    query = read_request.queries.add(
        start_timestamp_ms=start_ms, end_timestamp_ms=end_ms
    )
    query.matchers.extend(matchers)
    read_request.accepted_response_types.append(prompb.ReadRequest.SAMPLES)
    return read_request


def format_labels(series: prompb.TimeSeries) -> str:
    """Format series labels the way PromQL prints them."""
    name = ""
    pairs = []
    for label in series.labels:
        if label.name == "__name__":
            name = label.value
        else:
            pairs.append(f'{label.name}="{label.value}"')
    return f"{name}{{{', '.join(pairs)}}}"


def series_summary(read_response: prompb.ReadResponse) -> list[dict]:
    """One row per series with sample count and last value."""
    summary = []
    for result in read_response.results:
        for ts in result.timeseries:
            last = ts.samples[-1] if ts.samples else None
            summary.append(
                {
                    "series": format_labels(ts),
                    "samples": len(ts.samples),
                    "first_timestamp": ts.samples[0].timestamp if ts.samples else "",
                    "last_timestamp": last.timestamp if last else "",
                    "last_value": last.value if last else "",
                }
            )
    return summary


def sample_rows(read_response: prompb.ReadResponse) -> list[dict]:
    """One row per sample."""
    rows = []
    for result in read_response.results:
        for ts in result.timeseries:
            series = format_labels(ts)
            for sample in ts.samples:
                rows.append(
                    {"series": series, "timestamp": sample.timestamp, "value": sample.value}
                )
    return rows


@app.command("query")
def query(
    url: str = typer.Option(
        "http://localhost:9201/api/v1/read",
        "--url",
        "-u",
        help="Remote read endpoint URL",
    ),
    match: List[str] = typer.Option(
        ...,
        "--match",
        "-m",
        help="Label matcher: name=value, name!=value, name=~regex, name!~regex",
    ),
    start: Optional[str] = typer.Option(
        None, "--start", "-s", help="Start time: RFC3339, epoch ms or 'now' (default: 1h ago)"
    ),
    end: str = typer.Option("now", "--end", "-e", help="End time: RFC3339, epoch ms or 'now'"),
    output_format: str = typer.Option(
        "table", "--output", "-o", help="Output format: table, json, csv"
    ),
    samples: bool = typer.Option(
        False, "--samples", help="List every sample instead of a per-series summary"
    ),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds"),
) -> None:
    """
    Send a remote read request and print the returned series.

    Examples:
        promreader read query --match __name__=up

        promreader read query --match job=~"node.*" --start 2024-01-01T00:00:00Z --end now

        promreader read query --match host=a --samples --output csv
    """
    if output_format not in OUTPUT_FORMATS:
        print_error(f"Invalid output format: {output_format}")
        print_info(f"Valid formats: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)

    now_ms = int(time.time() * 1000)
    try:
        matchers = [parse_matcher(expression) for expression in match]
        end_ms = parse_time_ms(end, now_ms)
        start_ms = parse_time_ms(start, now_ms) if start else end_ms - 3600 * 1000
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if start_ms > end_ms:
        print_error("Start time must not be after end time")
        raise typer.Exit(1)

    protocol = PrometheusRemoteRead()
    body = protocol.encode_read_request(build_read_request(matchers, start_ms, end_ms))

    try:
        response = httpx.post(
            url,
            content=body,
            headers=PrometheusReadParser.create_request_headers(),
            timeout=timeout,
        )
    except httpx.ConnectError:
        print_error(f"Cannot connect to remote read endpoint at {url}")
        raise typer.Exit(1)
    except httpx.TimeoutException:
        print_error(f"Request to {url} timed out")
        raise typer.Exit(1)

    if response.status_code != 200:
        print_error(f"Server responded with {response.status_code}: {response.text.strip()}")
        raise typer.Exit(1)

    try:
        read_response = protocol.decode_read_response(response.content)
    except PromReaderError as e:
        print_error(f"Invalid response: {e.message}")
        logger.debug("response_decode_failed", error=str(e))
        raise typer.Exit(1)

    data = sample_rows(read_response) if samples else series_summary(read_response)

    render(data, output_format, title="Samples" if samples else "Series")

    stats = protocol.get_statistics(read_response)
    if output_format == "table":
        print_info(
            f"Series: {stats['total_time_series']:,} | Samples: {stats['total_samples']:,}"
        )
