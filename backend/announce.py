"""
Simulate a MediaBox player by broadcasting its announcement.

    python announce.py --name LivingRoom --address 192.168.1.50
"""

import argparse
import asyncio
import logging

from discovery.announcer import DEFAULT_FEATURES, Announcer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def run(announcer: Announcer) -> None:
    await announcer.start()
    try:
        await asyncio.Event().wait()
    finally:
        await announcer.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Broadcast MediaBox announcements")
    parser.add_argument("--name", default="mediabox")
    parser.add_argument("--address", required=True, help="address remotes connect to")
    parser.add_argument("--id", dest="device_id", default=None)
    parser.add_argument("--features", default=",".join(DEFAULT_FEATURES))
    parser.add_argument("--target", default="255.255.255.255")
    args = parser.parse_args()

    try:
        announcer = Announcer(
            name=args.name,
            address=args.address,
            device_id=args.device_id,
            features=[f for f in args.features.split(",") if f],
            target=args.target,
        )
    except ValueError as e:
        parser.error(str(e))
    try:
        asyncio.run(run(announcer))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
