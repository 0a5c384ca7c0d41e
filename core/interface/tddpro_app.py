"""Command-line entry: flag parsing, logging setup and TUI start-up."""

import argparse
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version as pkg_version
from pathlib import Path

import config
from application.feature_client import FeatureClient
from core import TddProError
from infrastructure.agent_client import AgentClient
from infrastructure.mcp_stdio_client import StdioToolInvoker

from .tui_app import TddProTUI

logger = logging.getLogger("tddpro.cli")

LOG_FILE_ENV = "TDDPRO_LOG_FILE"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tddpro", description="Interactive front-end for TDD-Pro features.")
    parser.add_argument("--version", action="store_true", help="print the version and exit")
    return parser


def configure_logging() -> None:
    target = os.environ.get(LOG_FILE_ENV, "").strip()
    if not target:
        return
    logging.basicConfig(
        filename=target,
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_tui(args) -> int:
    root = Path.cwd()
    client = FeatureClient(StdioToolInvoker(), cwd=str(root))
    tui = TddProTUI(
        client,
        project_root=root,
        agent=AgentClient(config.load_api_url()),
        external_editor=config.get_editor(),
    )
    tui.run()
    return 0


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    if args.version:
        try:
            print(pkg_version("tddpro-tui"))
        except PackageNotFoundError:
            print("0.0.0")
        return 0
    configure_logging()
    try:
        return cmd_tui(args)
    except (TddProError, OSError) as exc:
        logger.error("startup failed: %s", exc)
        print(f"tddpro: {exc}", file=sys.stderr)
        return 1
