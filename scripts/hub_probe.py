#!/usr/bin/env python3
"""Hub probe for observing door module traffic.

This script reuses the doorhub session to:
1) bind a UDP endpoint and send STATUS (or a chosen action) to each module,
2) print every FEEDBACK, EVENT, HEARTBEAT and HELLO that comes back,
3) print a short summary of what was seen.

Use this to check which status encoding a module's firmware speaks.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from doorhub import DoorHubClient, DoorHubError, HubConfig, ObserverEvent  # noqa: E402


@dataclass
class ProbeStats:
    started_at: float
    total_events: int = 0
    by_name: dict[str, int] = field(default_factory=dict)
    last_event_at: float | None = None

    def on_event(self, name: str, now: float) -> float | None:
        previous = self.last_event_at
        self.total_events += 1
        self.by_name[name] = self.by_name.get(name, 0) + 1
        self.last_event_at = now
        return None if previous is None else now - previous


class _PrintingObserver:
    def __init__(self, stats: ProbeStats, *, as_json: bool) -> None:
        self._stats = stats
        self._as_json = as_json

    def deliver(self, event: ObserverEvent) -> None:
        now = time.time()
        delta = self._stats.on_event(event.name, now)
        gap_text = "first" if delta is None else f"{delta:.1f}s"
        ts_text = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(now))
        print(f"[probe] #{self._stats.total_events} at {ts_text} gap={gap_text} {event.name}")
        if self._as_json:
            print(json.dumps(event.data, indent=2, sort_keys=True, default=str))
        else:
            print(f"[probe]   {json.dumps(event.data, sort_keys=True, default=str)}")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Send commands to door modules and print hub traffic.",
    )
    parser.add_argument(
        "modules",
        nargs="*",
        default=["D1"],
        help="Module ids to query (default: D1).",
    )
    parser.add_argument(
        "--action",
        default="STATUS",
        help="Action to send to each module (default: STATUS).",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=15,
        help="Seconds to keep listening after sending (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Pretty-print event payloads.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_summary(client: DoorHubClient, stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_seconds: {runtime:.1f}")
    print(f"[probe]   total_events   : {stats.total_events}")
    for name, count in sorted(stats.by_name.items()):
        print(f"[probe]   {name:<15}: {count}")
    for module_id, door in client.doors().items():
        print(f"[probe]   door {module_id}: {json.dumps(door.as_payload(), default=str)}")


async def _probe(args: argparse.Namespace) -> int:
    config = HubConfig.from_env(convergence_polling=False)
    stats = ProbeStats(started_at=time.time())
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    print(f"[probe] Hub {config.hub_host}:{config.hub_port}")
    async with DoorHubClient(config) as client:
        client.add_observer(_PrintingObserver(stats, as_json=args.json))

        for module_id in args.modules:
            try:
                feedback = await client.send_command(module_id, "D0", args.action)
            except DoorHubError as exc:
                print(f"[probe] {module_id} {args.action}: {exc}", file=sys.stderr)
                continue
            print(f"[probe] {module_id} {args.action} -> {feedback.raw_action} ({feedback.status.value})")

        if args.duration > 0:
            try:
                await asyncio.wait_for(stop.wait(), timeout=args.duration)
            except TimeoutError:
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
        else:
            await stop.wait()

        _print_summary(client, stats)
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_probe(args))
    except (DoorHubError, OSError) as exc:  # pragma: no cover - network/system interaction
        print(f"[probe] Failed: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
