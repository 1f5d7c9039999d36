"""Command-line entry point for habitgrid.

• ``serve``      – run the HTTP endpoint that phone shortcuts POST grid photos to.
• ``ingest``     – push local photos through the same pipeline.
• ``clear-log``  – wipe the diagnostic ``Log`` sheet.

Configuration comes from environment variables (a local ``.env`` is loaded
first) and an optional profile file; see config.py:
    GEMINI_API_KEY         – mandatory
    GEMINI_MODEL           – model id (default: gemini-2.5-flash)
    WORKBOOK_PATH          – .xlsx workbook holding the sheets (default: habits.xlsx)
    HABITS_SHEET / WEEKLY_SHEET / LOG_SHEET – sheet names
    TRACKING_YEAR          – year assumed for handwritten MM/DD week labels
    FIRST_WEEK_PRIOR_YEAR  – December days of week 1 belong to the prior year
    STRUCTURED_OUTPUT      – ask Gemini for schema-constrained JSON
    HABITGRID_PROFILE      – (optional) YAML/JSON profile overriding the above
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from tqdm import tqdm

from habitgrid.config import APP_VERSION, Config
from habitgrid.exceptions import ConfigurationError
from habitgrid.tablelog import clear_log
from habitgrid.tables import ExcelWorkbook

# --------------------------------------------------------------------------------------
# Logging helpers
# --------------------------------------------------------------------------------------


def setup_logging(logs_dir: Path = Path("logs")) -> None:
    """Configure a root logger that prints to stdout and also persists errors."""
    fmt = "%(asctime)s | %(levelname)-8s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    root = logging.getLogger()
    root.setLevel(logging.INFO)

    out_hdlr = logging.StreamHandler(sys.stdout)
    out_hdlr.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    logs_dir.mkdir(parents=True, exist_ok=True)
    err_hdlr = logging.FileHandler(logs_dir / "error.log", encoding="utf-8")
    err_hdlr.setLevel(logging.ERROR)
    err_hdlr.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root.handlers = [out_hdlr, err_hdlr]

    # Quiet noisy deps
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# --------------------------------------------------------------------------------------
# Commands
# --------------------------------------------------------------------------------------


def cmd_serve(config: Config, args: argparse.Namespace) -> int:
    import uvicorn

    from habitgrid.pipeline import HabitGridProcessor
    from habitgrid.server import create_app

    app = create_app(HabitGridProcessor.from_config(config))
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


def cmd_ingest(config: Config, args: argparse.Namespace) -> int:
    from habitgrid.pipeline import HabitGridProcessor

    processor = HabitGridProcessor.from_config(config)
    failures = 0
    for path in tqdm(args.images, desc="Ingesting"):
        status = processor.ingest_file(path)
        tqdm.write(f"{path.name}: {status}")
        if status.startswith("Error:"):
            failures += 1
    return 1 if failures else 0


def cmd_clear_log(config: Config, args: argparse.Namespace) -> int:
    clear_log(ExcelWorkbook(config.workbook_path), config.log_sheet)
    logging.getLogger(__name__).info("Cleared sheet '%s' in %s", config.log_sheet, config.workbook_path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="habitgrid",
        description="Turn photos of a handwritten weekly habit grid into spreadsheet rows.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP endpoint")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    serve.set_defaults(func=cmd_serve)

    ingest = sub.add_parser("ingest", help="Process local image files")
    ingest.add_argument("images", nargs="+", type=Path)
    ingest.set_defaults(func=cmd_ingest)

    clear = sub.add_parser("clear-log", help="Clear the diagnostic log sheet")
    clear.set_defaults(func=cmd_clear_log)

    return parser


# --------------------------------------------------------------------------------------
# CLI entry point
# --------------------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load configuration and run the chosen command."""
    args = build_parser().parse_args(argv)
    load_dotenv(override=True)
    setup_logging()

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        raise SystemExit(f"Configuration error: {e}")

    logger = logging.getLogger(__name__)
    logger.info("habitgrid %s (%s, workbook %s)", APP_VERSION, args.command, config.workbook_path)

    start = datetime.now()
    code = args.func(config, args)
    logger.info("Finished in %.1fs", (datetime.now() - start).total_seconds())
    return code


if __name__ == "__main__":
    sys.exit(main())
