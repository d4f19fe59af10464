#!/usr/bin/env python3
"""Switch Log Reconciler: service entry point."""

import sys
import os
import time
import signal
import argparse
import logging

from watchdog.observers import Observer

# Ensure the package is importable when run as `python switchrecon/main.py`
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from switchrecon.config import load_yaml_config, load_config
from switchrecon.harvester import ChunkHarvester
from switchrecon.registry import OffsetRegistry
from switchrecon.session import ReconcileSession
from switchrecon.sink import JsonLinesSink
from switchrecon.stats import ReconcileStats

logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, frame):
    global _running
    logger.info("Shutdown signal received, stopping...")
    _running = False


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Switch Log Reconciler")
    parser.add_argument(
        "--fixed-field-files", nargs="+", default=None,
        help="Fixed-field channel log files to watch",
    )
    parser.add_argument(
        "--json-files", nargs="+", default=None,
        help="JSON channel log files to watch",
    )
    parser.add_argument(
        "--output", default=None,
        help="JSON-lines file for reconciled transactions (default: stdout)",
    )
    parser.add_argument("--max-pending", type=int, default=None,
                        help="Evict the oldest pending entries beyond this count")
    parser.add_argument("--max-age", type=float, default=None,
                        help="Evict pending entries older than this many seconds")
    parser.add_argument("--emit-orphan-responses", action="store_true", default=False,
                        help="Emit JSON responses that never found a request")
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file",
    )
    return parser


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [RECON] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    args = build_cli_parser().parse_args(argv)
    config = load_config(args, load_yaml_config(args.config))
    if not config.fixed_field_files and not config.json_files:
        logger.error("No log files configured; pass --fixed-field-files and/or --json-files")
        return 2

    logger.info("Config: %d fixed-field file(s), %d JSON file(s), max_pending=%s, max_age=%s",
                len(config.fixed_field_files), len(config.json_files),
                config.max_pending, config.max_age_seconds)

    sink = JsonLinesSink(config.output_path)
    stats = ReconcileStats(config.stats_file)
    session = ReconcileSession.from_config(config, sink=sink, stats=stats)
    registry = OffsetRegistry(config.registry_file)
    harvester = ChunkHarvester.from_config(config, session, registry)

    harvester.startup_read()

    observer = Observer()
    for dir_path in harvester.get_watched_dirs():
        os.makedirs(dir_path, exist_ok=True)
        observer.schedule(harvester, dir_path, recursive=False)
        logger.info("Watching directory: %s", dir_path)
    observer.start()

    logger.info("Switch Log Reconciler running. Press Ctrl+C to stop.")

    last_stats_save = time.time()
    try:
        while _running:
            time.sleep(1)
            if time.time() - last_stats_save >= config.stats_interval:
                stats.save()
                registry.save()
                last_stats_save = time.time()
    except KeyboardInterrupt:
        pass

    logger.info("Shutting down...")
    observer.stop()
    observer.join(timeout=5)
    harvester.close_all()
    session.finish()
    registry.save()
    stats.save()
    sink.close()

    counters = stats.get_all()["counters"]
    logger.info("Stats: %d matched, %d orphan requests, %d orphan responses, %d parse errors",
                counters["pairs_matched"], counters["orphan_requests"],
                counters["orphan_responses"], counters["parse_errors"])
    logger.info("Switch Log Reconciler stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
