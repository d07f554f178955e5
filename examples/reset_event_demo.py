"""Reset event demo: hold callbacks until a resource is ready.

Usage:
    uv run python examples/reset_event_demo.py
"""

import asyncio
import logging

from asynclocks.queue_policy import ResetEventOptions
from asynclocks.reset_event import ResetEvent


async def demo_ready_gate():
    """Callbacks queue while the event is reset and all run on set()."""
    ready = ResetEvent()
    for i in range(3):
        ready.wait(lambda token, i=i: print(f"  request {i} served after {token.elapsed():.2f}s"))

    print("warming up...")
    await asyncio.sleep(0.5)
    ready.set()
    ready.wait(lambda token: print("  late request served immediately"))


async def demo_auto_reset():
    """With auto_reset_count=1 each set() lets exactly one waiter through."""
    turnstile = ResetEvent(options=ResetEventOptions(auto_reset_count=1))
    for i in range(3):
        turnstile.wait(lambda token, i=i: print(f"  passed: {i}"))

    while turnstile.queue_size():
        await asyncio.sleep(0.1)
        turnstile.set()
        print(f"set(): signaled={turnstile.is_signaled()} queued={turnstile.queue_size()}")


async def main():
    await demo_ready_gate()
    await demo_auto_reset()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())
