#!/usr/bin/env python3
"""Record every file created under a directory tree into MongoDB.

Startup order: logging, store configuration, directory watches, store
connection. The creation event loop then runs on its own thread until the
process receives SIGINT or SIGTERM.

Usage:
    tracelog-watchman /path/to/project --config conf.json
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from app.utils.config import Settings, get_settings, load_store_config, write_example_config
from app.utils.errors import ConnectionFatal, StartupFatal
from app.utils.log_setup import setup_logging
from app.utils.mongo_client import MetadataSink
from domains.file_activity.recorder import CreationRecorder
from domains.file_activity.watchers.notifier import DirectoryWatcher
from domains.file_activity.watchers.tree import watch_tree
from domains.file_activity.writer import POLICIES, QueuedSink


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Watch a directory tree and record newly created files in MongoDB.",
    )
    parser.add_argument(
        "root",
        nargs="?",
        type=Path,
        default=Path("."),
        help="Directory tree to watch (default: current directory).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Store configuration document (default: STORE_CONFIG_PATH or conf.json).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Append-only log file (default: LOG_FILE or tracelog.log).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Minimum log level (default: LOG_LEVEL or INFO).",
    )
    parser.add_argument(
        "--follow-new-dirs",
        action="store_true",
        default=None,
        help="Also watch directories created after startup.",
    )
    parser.add_argument(
        "--queue-size",
        type=int,
        default=None,
        help="Buffer records in a bounded writer queue of this size (0 writes inline).",
    )
    parser.add_argument(
        "--queue-policy",
        choices=POLICIES,
        default=None,
        help="What to do when the writer queue is full.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Also log to stderr.",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write an example store configuration document and exit.",
    )

    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    """
    Apply CLI overrides on top of environment settings.

    Raises:
        StartupFatal: If the environment or an override is invalid
    """

    overrides = {
        "store_config_path": args.config,
        "log_file": args.log_file,
        "log_level": args.log_level,
        "follow_new_directories": args.follow_new_dirs,
        "sink_queue_size": args.queue_size,
        "sink_queue_policy": args.queue_policy,
    }
    try:
        settings = base or get_settings()
        return Settings.model_validate(
            {**settings.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
    except ValidationError as e:
        raise StartupFatal(f"Invalid settings: {e}") from e


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    try:
        settings = resolve_settings(args)
    except StartupFatal as e:
        print(f"FATAL {e}", file=sys.stderr)
        return 1

    if args.init_config:
        written = write_example_config(settings.store_config_path)
        return 0 if written else 1

    try:
        setup_logging(settings.log_file, settings.log_level, console=args.verbose)
    except StartupFatal as e:
        print(f"FATAL {e}", file=sys.stderr)
        return 1

    try:
        store_config = load_store_config(settings.store_config_path)
    except StartupFatal as e:
        logger.error(str(e))
        return 1

    root = str(args.root)
    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    with DirectoryWatcher() as watcher:
        watch_tree(watcher, root)

        sink = MetadataSink(store_config, settings.server_selection_timeout_ms)
        try:
            sink.connect()
        except ConnectionFatal as e:
            logger.error(f"mongo connect ERROR: {e}")
            return 1

        writer = sink
        if settings.sink_queue_size > 0:
            writer = QueuedSink(sink, settings.sink_queue_size, settings.sink_queue_policy).start()

        recorder = CreationRecorder(
            watcher,
            writer,
            follow_new_directories=settings.follow_new_directories,
            poll_interval=settings.poll_interval,
        )
        loop = threading.Thread(target=recorder.run, args=(stop_event,), name="creation-event-loop", daemon=True)
        loop.start()
        logger.success(f"Recording file creation under {Path(root).resolve()}")

        exit_code = 0
        try:
            while not stop_event.is_set():
                stop_event.wait(settings.poll_interval)
        finally:
            stop_event.set()
            loop.join()
            if isinstance(writer, QueuedSink):
                writer.close()
            try:
                sink.close()
            except ConnectionFatal as e:
                logger.error(f"mongo disconnect ERROR: {e}")
                exit_code = 1

    logger.info("Tracelog watcher stopped.")
    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
