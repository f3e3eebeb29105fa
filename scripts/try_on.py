#!/usr/bin/env python3
"""
Run a virtual try-on job from the command line.

What it does
- Validates the two input images (png, jpeg or webp, non-empty)
- Submits them to the try-on endpoint in async mode and polls until done
- Falls back to a single blocking request when the endpoint has no async mode
- Prints progress to stderr and the resulting image URL to stdout

Requirements
- The package installed (pip install -e .)
- TRYON_API_ENDPOINT set in the environment or a .env file, or --endpoint

Usage examples
python scripts/try_on.py me.jpg jacket.png
python scripts/try_on.py me.jpg jacket.png --endpoint https://api.example.com/process -v
python scripts/try_on.py me.jpg jacket.png --poll-interval 2 --max-attempts 90
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from tryon.config import Settings
from tryon.exceptions import TryOnError
from tryon.services.orchestration.job_orchestrator import process_images
from tryon.utils.images import validate_image_source


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Try an outfit on a photo via the try-on API")
    p.add_argument("user_image", help="Photo of the person")
    p.add_argument("outfit_image", help="Photo of the outfit")
    p.add_argument("--endpoint", help="Override TRYON_API_ENDPOINT")
    p.add_argument("--poll-interval", type=float, help="Seconds between status checks")
    p.add_argument("--max-attempts", type=int, help="Status checks before giving up")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def _print_progress(progress: float) -> None:
    print(f"progress: {progress:.0f}%", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    settings = Settings()
    if args.endpoint:
        settings.TRYON_API_ENDPOINT = args.endpoint
    if args.poll_interval is not None:
        settings.POLL_INTERVAL_S = args.poll_interval
    if args.max_attempts is not None:
        settings.POLL_MAX_ATTEMPTS = max(1, args.max_attempts)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        user_mime = validate_image_source(args.user_image, accepted=settings.ACCEPTED_MIME)
        outfit_mime = validate_image_source(args.outfit_image, accepted=settings.ACCEPTED_MIME)
        result = asyncio.run(
            process_images(
                args.user_image,
                args.outfit_image,
                _print_progress,
                settings=settings,
                user_mime=user_mime,
                outfit_mime=outfit_mime,
            )
        )
    except TryOnError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(result.message, file=sys.stderr)
    print(result.imageUrl)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
