"""Command Line Interface for the telemetry SDK.

This module provides a CLI for sending events to the collector and inspecting
local SDK state. Configuration comes from ``BEACON_*`` environment variables,
overridden by command-line options.

The CLI supports the following commands:
    - track: Track a custom event
    - page-view: Track a page view
    - click: Track a click
    - analytics: Fetch server-side aggregates
    - keys: List the keys held in local storage

Properties can be provided either as a direct JSON string or as a file path
prefixed with '@'.

Example Usage:
    python -m beacon track signup --properties '{"plan": "pro"}'
    python -m beacon page-view https://example.com/pricing --title Pricing
    python -m beacon click buy-button --properties @click.json
    python -m beacon analytics --start 2024-01-01T00:00:00Z --end 2024-02-01T00:00:00Z
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

from .core.config import SDKConfig, StorageConfig
from .core.exceptions import BeaconError
from .core.models import BatchOutcome
from .infrastructure.storage import KeyValueStore
from .sdk import BeaconSDK


def parse_json_input(json_str: str) -> Dict[str, Any]:
    """Parse JSON input from either a string or file.

    Args:
        json_str (str): Either a JSON string or a file path prefixed with '@'.
                       Relative paths are resolved against the current directory.

    Returns:
        dict: Parsed JSON data.

    Raises:
        ValueError: If the JSON is invalid, is not an object, or the file is not found.
    """
    if json_str.startswith("@"):
        file_path = json_str[1:]
        if not os.path.isabs(file_path):
            file_path = os.path.join(os.getcwd(), file_path)

        if not os.path.exists(file_path):
            raise ValueError(f"File not found: {file_path}")

        with open(file_path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {file_path}: {e}")
    else:
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON input: {e}")

    if not isinstance(data, dict):
        raise ValueError("Properties must be a JSON object")
    return data


def build_config(args: argparse.Namespace) -> SDKConfig:
    """Build the SDK configuration from the environment and CLI options.

    Timer-driven flushing is irrelevant for a one-shot command; events are
    flushed explicitly before the SDK is destroyed.
    """
    storage = {"type": args.storage_type} if args.storage_type else None
    return SDKConfig.from_env(
        api_key=args.api_key,
        base_url=args.base_url,
        debug=True if args.debug else None,
        auto_track_sessions=False,
        storage_config=storage,
    )


def build_sdk(config: SDKConfig) -> BeaconSDK:
    return BeaconSDK(config)


def build_storage_config(args: argparse.Namespace) -> StorageConfig:
    return StorageConfig(
        type=args.storage_type or os.environ.get("BEACON_STORAGE_TYPE") or "durable",
        path=os.environ.get("BEACON_STORAGE_PATH") or None,
    )


def _outcome_dict(outcome: Optional[BatchOutcome]) -> Optional[Dict[str, Any]]:
    return outcome.to_dict() if outcome is not None else None


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser.

    Returns:
        argparse.ArgumentParser: Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(description="Beacon telemetry CLI")
    parser.add_argument("--api-key", help="Collector API key (default: $BEACON_API_KEY)")
    parser.add_argument("--base-url", help="Collector base URL (default: $BEACON_BASE_URL)")
    parser.add_argument(
        "--storage-type",
        choices=["durable", "ephemeral", "memory"],
        help="Local storage backend",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    track = subparsers.add_parser("track", help="Track a custom event")
    track.add_argument("name", help="Event name")
    track.add_argument("--properties", help="JSON string or @filename with event properties")
    track.add_argument("--category", help="Event category")
    track.add_argument("--action", help="Event action")
    track.add_argument("--label", help="Event label")
    track.add_argument("--value", type=float, help="Numeric event value")

    page_view = subparsers.add_parser("page-view", help="Track a page view")
    page_view.add_argument("url", help="Page URL")
    page_view.add_argument("--title", help="Page title")
    page_view.add_argument("--referrer", help="Referring URL")
    page_view.add_argument("--properties", help="JSON string or @filename with event properties")

    click = subparsers.add_parser("click", help="Track a click")
    click.add_argument("element", help="Clicked element identifier")
    click.add_argument("--selector", help="Element selector")
    click.add_argument("--text", help="Element text")
    click.add_argument("--properties", help="JSON string or @filename with event properties")

    analytics = subparsers.add_parser("analytics", help="Fetch server-side aggregates")
    analytics.add_argument("--start", help="Range start (ISO-8601)")
    analytics.add_argument("--end", help="Range end (ISO-8601)")

    subparsers.add_parser("keys", help="List keys held in local storage")

    return parser


async def list_keys(config: StorageConfig) -> List[str]:
    storage = KeyValueStore(config)
    await storage.initialize()
    try:
        return await storage.keys()
    finally:
        await storage.close()


async def run_command(sdk: BeaconSDK, args: argparse.Namespace) -> Dict[str, Any]:
    """Execute one tracking or analytics command against an initialized SDK."""
    properties = parse_json_input(args.properties) if getattr(args, "properties", None) else None

    if args.command == "analytics":
        return {"analytics": await sdk.get_analytics(args.start, args.end)}

    if args.command == "track":
        event = await sdk.track(
            args.name, properties, args.category, args.action, args.label, args.value
        )
    elif args.command == "page-view":
        event = await sdk.track_page_view(args.url, args.title, args.referrer, properties)
    else:
        event = await sdk.track_click(args.element, args.selector, args.text, properties)

    outcome = await sdk.flush()
    return {"event": event.to_wire(), "outcome": _outcome_dict(outcome)}


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI application.

    Handles command-line argument parsing, runs the requested command and
    prints a JSON summary.

    Returns:
        int: Process exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "keys":
            result: Dict[str, Any] = {"keys": await list_keys(build_storage_config(args))}
        else:
            sdk = build_sdk(build_config(args))
            await sdk.initialize()
            try:
                result = await run_command(sdk, args)
            finally:
                await sdk.destroy()
    except (BeaconError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))
