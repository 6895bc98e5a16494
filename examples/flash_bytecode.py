"""Compile a Ruby script (or take a prebuilt .mrb) and flash it to an OpenBlink board.

Usage:
    uv run python examples/flash_bytecode.py app.rb
    uv run python examples/flash_bytecode.py app.mrb --address AA:BB:CC:DD:EE:FF --slot 1
    uv run python examples/flash_bytecode.py --reset
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import subprocess
import tempfile
from pathlib import Path

from openblink import (
    DEFAULT_SLOT,
    OpenBlinkDevice,
    OpenBlinkError,
    SelectionCancelled,
    select_by_address,
    select_first_device,
)


def compile_with_mrbc(source: str) -> tuple[int, bytes]:
    """Compile Ruby source with the mrbc executable on PATH."""
    with tempfile.TemporaryDirectory() as tmp:
        source_file = Path(tmp) / "temp.rb"
        output_file = Path(tmp) / "temp.mrb"
        source_file.write_text(source)

        result = subprocess.run(
            ["mrbc", "-o", str(output_file), str(source_file)],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            print(result.stderr.strip())
            return result.returncode, b""
        return 0, output_file.read_bytes()


async def flash(args: argparse.Namespace) -> None:
    """Connect, then send the program or a reset."""
    if args.address:
        selector = select_by_address(args.address, timeout=args.scan_timeout)
    else:
        selector = select_first_device(timeout=args.scan_timeout)

    device = OpenBlinkDevice(selector=selector, auto_reconnect=False)
    try:
        await device.connect()
    except SelectionCancelled:
        print("Connection cancelled: No device selected")
        return

    try:
        if args.reset:
            await device.send_reset()
            return

        path: Path = args.program
        if path.suffix == ".mrb":
            result = await device.send_program(path.read_bytes(), slot=args.slot)
        else:
            result = await device.build_and_send(
                path.read_text(), compiler=compile_with_mrbc, slot=args.slot
            )

        print(
            f"Sent {result.length} bytes to slot {result.slot} "
            f"(CRC16={result.crc:04x}, MTU={result.mtu}, frames={result.data_frames})"
        )
        if args.listen > 0:
            await asyncio.sleep(args.listen)
    finally:
        await device.disconnect()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Flash mruby/c bytecode to an OpenBlink board over BLE."
    )
    parser.add_argument(
        "program",
        type=Path,
        nargs="?",
        help="Ruby source (.rb) or compiled bytecode (.mrb)",
    )
    parser.add_argument("--address", help="Device MAC address (default: first OpenBlink found)")
    parser.add_argument(
        "--slot",
        type=int,
        default=DEFAULT_SLOT,
        help=f"Destination slot. Default: {DEFAULT_SLOT}",
    )
    parser.add_argument("--reset", action="store_true", help="Reboot the device instead of flashing")
    parser.add_argument(
        "--scan-timeout",
        type=float,
        default=10.0,
        help="Scan duration in seconds. Default: 10",
    )
    parser.add_argument(
        "--listen",
        type=float,
        default=0.0,
        help="Keep printing device console output for N seconds after flashing",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every frame")
    args = parser.parse_args()
    if args.program is None and not args.reset:
        parser.error("program is required unless --reset is given")
    return args


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(flash(args))
    except OpenBlinkError as err:
        print(f"Error: {err}")
        raise SystemExit(1) from err
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
