"""
Command-line entry point for the highlight renderer.

Usage:
    python -m highlight_renderer.main request.json
    python -m highlight_renderer.main request.json --output result.json

Development helpers for captured payloads (see CAPTURE_PAYLOADS):
    python -m highlight_renderer.main --list-captures
    python -m highlight_renderer.main --replay-latest
    python -m highlight_renderer.main --clear-captures
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional

from pydantic import ValidationError

from highlight_renderer.config import get_settings
from highlight_renderer.services.highlight_pipeline import TASK_TYPE, HighlightPipeline
from highlight_renderer.services.media_downloader import DownloadError
from highlight_renderer.services.payload_capture import PayloadCapture

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render highlight clips from a generate-highlight request"
    )
    parser.add_argument("request", nargs="?", help="Path to the request JSON (camelCase payload)")
    parser.add_argument("--output", "-o", help="Write the result JSON here instead of stdout")

    captures = parser.add_mutually_exclusive_group()
    captures.add_argument(
        "--list-captures", action="store_true", help="List captured payloads, newest first"
    )
    captures.add_argument(
        "--replay-latest", action="store_true", help="Render the latest captured payload again"
    )
    captures.add_argument(
        "--clear-captures", action="store_true", help="Delete all captured payloads"
    )
    return parser


def print_progress(stage: str, percent: float) -> None:
    logger.info(f"[{percent:5.1f}%] {stage}")


def list_captures(capture: PayloadCapture) -> int:
    entries = [
        {"taskType": p.task_type, "timestamp": p.timestamp, "note": p.note}
        for p in capture.get_captured_payloads(TASK_TYPE)
    ]
    print(json.dumps(entries, indent=2))
    return 0


def clear_captures(capture: PayloadCapture) -> int:
    removed = capture.clear_payloads(TASK_TYPE)
    print(f"Removed {removed} captured payload file(s)")
    return 0


def load_latest_capture(capture: PayloadCapture) -> Optional[dict[str, Any]]:
    """Latest captured payload, marked so replaying it is not captured again."""
    latest = capture.get_latest_payload(TASK_TYPE)
    if latest is None:
        return None
    return {**latest.payload, "skipCapture": True}


async def run_payload(
    payload: dict[str, Any],
    output_path: Optional[str] = None,
    pipeline: Optional[HighlightPipeline] = None,
) -> int:
    pipeline = pipeline or HighlightPipeline(get_settings())
    try:
        result = await pipeline.generate_highlight(payload, on_progress=print_progress)
    except ValidationError as e:
        logger.error(f"Invalid request: {e}")
        return 2
    except DownloadError as e:
        logger.error(f"Source media unavailable: {e}")
        return 1

    output = result.model_dump_json(by_alias=True, indent=2)
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info(f"Result written to {output_path}")
    else:
        print(output)

    return 0 if result.succeeded else 1


async def run(request_path: str, output_path: Optional[str] = None) -> int:
    with open(request_path, encoding="utf-8") as f:
        payload = json.load(f)
    return await run_payload(payload, output_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    if args.list_captures or args.clear_captures or args.replay_latest:
        capture = PayloadCapture(settings=settings)
        if args.list_captures:
            return list_captures(capture)
        if args.clear_captures:
            return clear_captures(capture)

        payload = load_latest_capture(capture)
        if payload is None:
            logger.error(f"No captured {TASK_TYPE} payload to replay")
            return 1
        return asyncio.run(run_payload(payload, args.output))

    if not args.request:
        parser.error("a request path is required unless a capture option is given")
    return asyncio.run(run(args.request, args.output))


if __name__ == "__main__":
    sys.exit(main())
