#!/usr/bin/env python3
"""
Main entry point for the Tello command client

Run this file to start the console:
python main.py
or the keyboard pad window:
python main.py --pad
"""

import argparse

from tellocmd.config import SETTINGS_FILE
from tellocmd.console import run_console
from tellocmd.initialization import (
    load_app_settings, create_directories, initialize_client, connect_client, cleanup_client
)
from tellocmd.logger import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Tello drone text-command client")
    parser.add_argument("--config", default=SETTINGS_FILE, help="settings file (YAML)")
    parser.add_argument("--ip", default=None, help="drone IP address")
    parser.add_argument("--pad", action="store_true", help="open the keyboard pad window")
    parser.add_argument("--run", default=None, help="command file to execute after connecting")
    parser.add_argument("--log-file", default=None)
    return parser.parse_args(argv)


def main(argv=None):
    """Main function - Entry point of the application"""
    args = parse_args(argv)
    app_settings = load_app_settings(args.config)
    if args.ip:
        app_settings.ip = args.ip
    logger = setup_logging(app_settings.log_level, args.log_file)
    logger.info("Load settings from %s", args.config)

    create_directories(app_settings, logger)
    client, interpreter = initialize_client(app_settings, logger)

    try:
        if not connect_client(client, app_settings, logger):
            logger.error("Failed to connect to Tello")
            if not args.pad:
                return 1

        if args.run:
            interpreter.execute(f"run {args.run}")

        if args.pad:
            from tellocmd.ui_controller import main_loop
            main_loop(client, interpreter, logger)
        elif not args.run:
            run_console(client, interpreter, logger=logger)

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt detected")
    finally:
        logger.info("Shutting down...")
        cleanup_client(client, logger)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
