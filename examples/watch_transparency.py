"""Read and watch transparency settings and AACP events from earbuds.

Usage:
    uv run python examples/watch_transparency.py AA:BB:CC:DD:EE:FF --duration 30
    uv run python examples/watch_transparency.py AA:BB:CC:DD:EE:FF --amplification 0.2
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from aacp import (
    AACPManager,
    AccessibilitySettings,
    BTConnectionError,
    ControlCommand,
    EventType,
    L2CAPATTSession,
    L2CAPLink,
    SyncState,
    TransparencySettings,
)


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_settings(settings: TransparencySettings) -> None:
    """Print one transparency record."""
    print(
        f"[{_timestamp()}] transparency enabled={settings.enabled} "
        f"amplification={settings.net_amplification:+.2f} balance={settings.balance:+.2f} "
        f"tone={settings.left_tone:+.2f} conversation_boost={settings.left_conversation_boost} "
        f"noise_reduction={settings.left_ambient_noise_reduction:.2f}"
    )


def _print_command(command: ControlCommand) -> None:
    identifier = command.known_identifier
    label = identifier.label if identifier else f"0x{command.identifier:02x}"
    print(f"[{_timestamp()}] control {label}={command.value.hex()}")


async def watch(address: str, duration: float, amplification: float | None) -> None:
    """Connect, print initial state and stream updates."""
    aacp = AACPManager(L2CAPLink(address))
    try:
        await aacp.connect()
    except BTConnectionError as err:
        print(f"[{_timestamp()}] AACP unavailable ({err}); continuing with ATT only")
        aacp = None

    if aacp is not None:
        aacp.register_event_listener(EventType.CONTROL_COMMAND, _print_command)
        aacp.register_event_listener(
            EventType.BATTERY_INFO,
            lambda batteries: print(f"[{_timestamp()}] battery {batteries}"),
        )

    settings = AccessibilitySettings(L2CAPATTSession(address), aacp)
    try:
        state = await settings.start()
        if state is SyncState.FAILED:
            print(f"[{_timestamp()}] could not read transparency settings")
            return

        _print_settings(settings.transparency)
        settings.on_transparency_changed(_print_settings)

        if amplification is not None:
            current = settings.transparency
            settings.update_transparency_controls(
                enabled=current.enabled,
                amplification=amplification,
                balance=current.balance,
                tone=current.left_tone,
                conversation_boost=current.left_conversation_boost,
                ambient_noise_reduction=current.left_ambient_noise_reduction,
                eq=current.left_eq,
            )

        if duration > 0:
            await asyncio.sleep(duration)
        else:
            while True:
                await asyncio.sleep(1)
    finally:
        await settings.close()
        if aacp is not None:
            await aacp.disconnect()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Read and watch transparency settings from AACP earbuds."
    )
    parser.add_argument("address", help="Bluetooth address of the earbuds")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Watch duration in seconds (0 = run until Ctrl+C). Default: 30",
    )
    parser.add_argument(
        "--amplification",
        type=float,
        default=None,
        help="Write a new amplification value (-1..1) after the initial read.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    try:
        asyncio.run(watch(args.address, duration=args.duration, amplification=args.amplification))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
