#!/usr/bin/env python3
"""Demo of the crash logger.

Binds a logger, writes an application message and a handled error, then
lets a worker thread die with an unhandled exception so both crash
callbacks fire. Finally prints the tail of each log.

Usage:
    python examples/demo.py --log-dir /tmp/crashlog-demo
    python examples/demo.py --config crashlog.yaml
"""

import argparse
import logging
import sys
import threading

from crashlog import CrashLogConfig, ExceptionLogger, StaticIdentity, load_config
from crashlog.file_utils import tail_file


def parse_settings(text):
    return dict(pair.split("=", 1) for pair in text.split(";") if "=" in pair)


def on_crash():
    print("crash callback: something went unhandled")


def on_crash_data(args):
    print(f"crash data callback: {type(args.exception).__name__} from {args.sender!r}, "
          f"terminating={args.is_terminating}, extra={args.additional_data}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Crash logger demo")
    parser.add_argument("--log-dir", help="Write logs here instead of the app data folder")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--instance", type=int, default=0, help="Instance suffix for the log files")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = load_config(args.config) if args.config else CrashLogConfig(app_name="crashlog-demo")
    if args.log_dir:
        config.log_dir = args.log_dir
    config.instance_suffix = args.instance

    with ExceptionLogger(config, identity=StaticIdentity("1.0.0", "Crash Logger Demo")) as log:
        log.add_crash_callback(on_crash)
        log.add_crash_data_callback(on_crash_data)
        log.crash_hook.set_payload_builder(
            lambda payload: payload.additional_data.append({"threads": threading.active_count()})
        )

        log.append_message("demo started")

        try:
            parse_settings(None)
        except AttributeError as e:
            log.append_error(e, "parsing settings")

        worker = threading.Thread(target=parse_settings, args=(42,), name="settings-worker")
        worker.start()
        worker.join()

        for path in (log.message_log_path, log.error_log_path):
            print(f"\n==> {path} <==")
            for line in tail_file(path, 12):
                print(line)

    return 0


if __name__ == "__main__":
    sys.exit(main())
