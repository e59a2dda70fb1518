#!/usr/bin/env python3
"""
Live stats observer.

Connects to the tracker's WebSocket and prints every stats snapshot it
receives. Reconnects after a dropped connection and gets a fresh snapshot.

Usage:
    python scripts/watch_stats.py --url ws://localhost:4000/ws
"""
import argparse
import asyncio
import json
from datetime import datetime

import websockets


def format_snapshot(stats: dict) -> str:
    """Render a stats mapping as 'Party A: 2 | Party B: 1'."""
    if not stats:
        return "(no candidates)"
    return " | ".join(f"{party}: {count}" for party, count in sorted(stats.items()))


async def watch(url: str, reconnect_delay: float, max_messages: int = 0) -> None:
    received = 0
    while True:
        try:
            async with websockets.connect(url) as ws:
                print(f"Connected to {url}")
                async for raw in ws:
                    message = json.loads(raw)
                    if message.get("type") != "stats":
                        continue
                    received += 1
                    stamp = datetime.now().strftime("%H:%M:%S")
                    print(f"[{stamp}] {format_snapshot(message['stats'])}")
                    if max_messages and received >= max_messages:
                        return
        except (OSError, websockets.ConnectionClosed) as e:
            print(f"Connection lost ({e}), retrying in {reconnect_delay}s")
            await asyncio.sleep(reconnect_delay)


def main():
    parser = argparse.ArgumentParser(description="Print live election stats")
    parser.add_argument("--url", default="ws://localhost:4000/ws", help="Stats WebSocket URL")
    parser.add_argument("--reconnect-delay", type=float, default=2.0)
    parser.add_argument("--count", type=int, default=0, help="Exit after N snapshots (0 = forever)")
    args = parser.parse_args()

    try:
        asyncio.run(watch(args.url, args.reconnect_delay, args.count))
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
