#!/usr/bin/env python3
import argparse
import logging
import sys
from typing import Dict, List, Optional

from requesterlib.client import Client
from requesterlib.config import ClientConfig, DEFAULT_USER_AGENT
from requesterlib.errors import RequesterError
from requesterlib.metrics import StatsLogger
from requesterlib.net import HttpTransport
from requesterlib.paging import next_from_body_field, next_from_link_header
from requesterlib.storage import JsonlWriter


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Walk every page of a JSON listing endpoint and write items as JSONL.")
    parser.add_argument("url", help="Absolute URL of the first page.")
    parser.add_argument("--out", dest="output_path", default="items.jsonl", help="Path to JSONL output file.")
    parser.add_argument("--page-size", type=int, default=0, help="Items per page to request (0 for server default).")
    parser.add_argument("--page-size-param", default="per_page", help="Query parameter carrying the page size.")
    parser.add_argument("--items-key", default=None, help="Key holding the item list when pages are JSON objects.")
    parser.add_argument(
        "--next-field",
        default=None,
        help="Body field holding the next page URL (default: follow the Link header).",
    )
    parser.add_argument("--max-items", type=int, default=0, help="Stop after this many items (0 for no limit).")
    parser.add_argument(
        "-H", "--header", dest="headers", action="append", default=[], help="Extra header, 'Name: value'."
    )
    parser.add_argument("--timeout", type=float, default=15.0, help="HTTP read timeout in seconds.")
    parser.add_argument("--retries", type=int, default=2, help="Transport-level retries for idempotent requests.")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header to send.")
    parser.add_argument("--max-connections", type=int, default=16, help="Max connections per pool for HTTP client.")
    parser.add_argument("--metrics-interval", type=float, default=0.0, help="Seconds between perf logs (0 to disable).")
    parser.add_argument("--prometheus-port", type=int, default=0, help="Serve Prometheus metrics on this port (0 to disable).")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")
    return parser.parse_args(argv)


def parse_headers(values: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"invalid header {value!r}, expected 'Name: value'")
        headers[name.strip()] = content.strip()
    return headers


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_level = logging.WARNING
    if args.verbose == 1:
        log_level = logging.INFO
    elif args.verbose >= 2:
        log_level = logging.DEBUG
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(threadName)s %(message)s",
    )

    config = ClientConfig(
        user_agent=args.user_agent,
        request_timeout=max(1.0, args.timeout),
        max_connections=max(1, args.max_connections),
        retries=max(0, args.retries),
        page_size_param=args.page_size_param,
        default_headers=parse_headers(args.headers),
        metrics_interval=max(0.0, args.metrics_interval),
    )
    transport = HttpTransport(config)
    client = Client(config, transport=transport)

    stats: Optional[StatsLogger] = None
    if config.metrics_interval > 0:
        stats = StatsLogger(transport.metrics, config.metrics_interval)
        stats.start()
    exporter = None
    if args.prometheus_port > 0:
        from requesterlib.prometheus_exporter import PrometheusExporter

        exporter = PrometheusExporter(transport.metrics, port=args.prometheus_port)
        exporter.start()

    next_page = next_from_body_field(args.next_field) if args.next_field else next_from_link_header
    items = (
        client.create_request()
        .with_url(args.url)
        .to_iterable(items_key=args.items_key, next_page=next_page)
        .with_page_size(args.page_size)
    )
    logging.info("Listing %s", args.url)
    try:
        with JsonlWriter(args.output_path) as writer:
            for item in items:
                writer.write(item)
                if args.max_items and writer.count >= args.max_items:
                    break
            logging.info("Finished. Items written: %d. Output: %s", writer.count, args.output_path)
    except RequesterError as exc:
        logging.error("Listing failed: %s", exc)
        return 1
    finally:
        if stats:
            stats.stop()
        if exporter:
            exporter.stop()
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
