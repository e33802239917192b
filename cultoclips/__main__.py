"""
CultoClips command line runner

Submit a YouTube URL, follow the job until it finishes and print the clips.

Usage:
    python -m cultoclips https://youtu.be/abc
    python -m cultoclips https://youtu.be/abc --timeout 900
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from cultoclips.config import get_settings
from cultoclips.models.view import JobView


def print_view(view: JobView) -> None:
    if view.current_job is not None:
        state = "working" if view.in_progress else "idle"
        print(f"⏳ Job {view.current_job.id}: {view.current_job.status.value} ({state})")
    if view.last_error:
        print(f"❌ Generation failed: {view.last_error}")


def print_clips(view: JobView) -> None:
    if not view.clips:
        print("No clips were returned for this job.")
        return

    print(f"\n✅ {len(view.clips)} clips ready")
    for idx, clip in enumerate(view.clips, 1):
        print(f"\n{idx}. {clip.title}")
        if clip.summary:
            print(f"   {clip.summary}")
        print(f"   ⬇️  {clip.download_url}")


async def run(url: str, timeout: Optional[float]) -> int:
    from cultoclips.services.session import create_clip_session

    session = await create_clip_session()
    async with session:
        session.add_listener(print_view)
        view = await session.submit(url)
        if view.current_job is None:
            return 1

        try:
            view = await session.wait_until_settled(timeout)
        except asyncio.TimeoutError:
            print(f"⌛ Gave up after {timeout}s; job {view.current_job.id} is still running")
            return 1

    if view.last_error or view.current_job is None:
        return 1
    print_clips(view)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="CultoClips: turn long videos into shorts")
    parser.add_argument("url", help="YouTube URL to clip")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the job before giving up",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    if not args.url:
        parser.error("url must not be empty")

    return asyncio.run(run(args.url, args.timeout))


if __name__ == "__main__":
    sys.exit(main())
