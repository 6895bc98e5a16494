"""List OpenBlink boards in range.

Usage:
    uv run python examples/scan_devices.py --duration 5
"""

from __future__ import annotations

import argparse
import asyncio

from openblink import SERVICE_UUID, discover_devices


async def scan(duration: float) -> None:
    """Scan and print matching devices, strongest first."""
    print(f"Scanning for OpenBlink devices (service {SERVICE_UUID})...")
    devices = await discover_devices(timeout=duration)

    if not devices:
        print("No OpenBlink devices found")
        return

    for device in devices:
        print(f"  {device.name or 'Unknown'} ({device.address})")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan for OpenBlink BLE devices.")
    parser.add_argument(
        "--duration",
        type=float,
        default=5.0,
        help="Scan duration in seconds. Default: 5",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    try:
        asyncio.run(scan(duration=args.duration))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
