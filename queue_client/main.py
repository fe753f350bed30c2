# =============================================================================
# AI Perfume Queue Client - Command-Line Entry Point
# =============================================================================
# Submits one image from the command line, printing each status update as it
# arrives and the rendered result at the end. Stands in for the mobile UI:
# it supplies the image path and mode, and consumes status lines plus the
# final outcome.
# =============================================================================

import argparse
import asyncio
import logging
import sys

from config import get_config
from queue_client.orchestrator import submit_image
from shared.errors import QueueClientError
from shared.schemas import (
    CreationResult,
    Failure,
    JobOutcome,
    Mode,
    RecommendationResult,
)

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_SUBMIT_ERROR = 2


def render_result(payload) -> str:
    """Format a result payload the way the app displays it."""
    if isinstance(payload, RecommendationResult):
        lines = [payload.analysis]
        if not payload.items:
            lines.append("No data.")
        for index, item in enumerate(payload.items, start=1):
            lines.append(f"[{index}] {item.image}")
            if item.caption:
                lines.append(f"    {item.caption}")
        return "\n".join(lines)

    if isinstance(payload, CreationResult):
        lines = ["Perfume Creation Details:", payload.caption]
        lines.extend(payload.images)
        return "\n".join(lines)

    return str(payload)


def _print_status(status: str) -> None:
    print(f"> {status}", flush=True)


async def _run(image: str, mode: Mode, config) -> JobOutcome:
    return await submit_image(image, mode, _print_status, config=config)


def main(argv=None) -> int:
    """CLI entry point for submitting an image."""
    parser = argparse.ArgumentParser(
        description="AI Perfume: submit an image to the recommendation/creation queue",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("image", help="Path to the image to submit")
    parser.add_argument(
        "--mode", choices=[mode.value for mode in Mode], default=None,
        help="Processing mode (defaults to config)",
    )
    parser.add_argument(
        "--base-url", type=str, default=None,
        help="Service base URL (e.g., https://api.fashtechai.com)",
    )
    parser.add_argument(
        "--idle-timeout", type=float, default=None,
        help="Seconds without any server event before giving up (overrides config)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = get_config()
    if args.base_url is not None:
        config.base_url = args.base_url.rstrip("/")
    if args.idle_timeout is not None:
        config.idle_timeout_seconds = args.idle_timeout
    mode = Mode(args.mode or config.default_mode)

    try:
        outcome = asyncio.run(_run(args.image, mode, config))
    except QueueClientError as exc:
        logger.error("Submission failed: %s", exc)
        return EXIT_SUBMIT_ERROR
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received. Submission abandoned.")
        return EXIT_FAILURE

    if isinstance(outcome, Failure):
        print(f"Failed ({outcome.kind.value}): {outcome.reason}")
        return EXIT_FAILURE

    print()
    print(render_result(outcome.payload))
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
