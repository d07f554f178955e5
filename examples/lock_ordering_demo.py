"""Named-lock demo: several workers share one lock and run in FIFO order.

Usage:
    uv run python examples/lock_ordering_demo.py
"""

import asyncio
import logging

from asynclocks.registry import LockRegistry


async def _worker(worker_id: int):
    print(f"acquired  worker({worker_id})")
    await asyncio.sleep(0.2)
    print(f"released  worker({worker_id})")
    return worker_id


async def demo_lock_ordering(registry: LockRegistry):
    """Launch several workers that all compete for the same lock (FIFO order)."""
    num_tasks = 6
    tasks = [registry.run("foo", _worker, i) for i in range(num_tasks)]
    print(f"launched {num_tasks} workers with shared lock. gathering...")
    done = await asyncio.gather(*tasks)
    print(f"all workers finished: {done}")


async def demo_callback_lock(registry: LockRegistry):
    """Callback style: the callback gets a leave() it must call when done."""
    finished = asyncio.Event()

    def critical_section(leave):
        print("callback holds 'bar'")

        def _later():
            leave()
            finished.set()

        asyncio.get_running_loop().call_later(0.1, _later)

    registry.lock("bar", critical_section)
    token = registry.lock("bar", lambda leave: print("never printed"), timeout=0.05)
    await finished.wait()
    print(f"second caller timed out: canceled={token.is_canceled}")


async def main():
    registry = LockRegistry()
    await demo_lock_ordering(registry)
    await demo_callback_lock(registry)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())
