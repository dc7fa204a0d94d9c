import asyncio
import logging

logger = logging.getLogger(__name__)


class Collector:
    """Fetches tickers on every timer tick and queues them for the persister.

    Fetch errors are not caught: the first failure ends ``run`` and the
    supervisor stops the process. The quit event is only looked at between
    fetches, so a fetch in flight finishes and its ticks are still queued.
    """

    def __init__(self, config, quote_client, queue, quit_event):
        self.config = config
        self.quote_client = quote_client
        self.queue = queue
        self.quit_event = quit_event
        self.fetch_count = 0

    async def collect(self):
        if self.config.crypto:
            tick = await self.quote_client.fetch_one(self.config.crypto, self.config.convert)
            ticks = [tick]
        else:
            ticks = await self.quote_client.fetch_all(self.config.convert)
        for tick in ticks:
            await self.queue.put(tick)
        self.fetch_count += 1
        logger.info(f"Queued {len(ticks)} ticks")
        return len(ticks)

    async def _wait_for_tick(self, deadline):
        """Returns True when the timer fired, False when quit was signalled."""
        loop = asyncio.get_running_loop()
        timeout = max(0, deadline - loop.time())
        try:
            await asyncio.wait_for(self.quit_event.wait(), timeout=timeout)
            return False
        except asyncio.TimeoutError:
            return not self.quit_event.is_set()

    async def run(self):
        loop = asyncio.get_running_loop()
        interval = self.config.collect_interval
        deadline = loop.time()
        if not self.config.collect_on_start:
            deadline += interval
        logger.info(f"Collector started, interval {interval}s, crypto {self.config.crypto or 'all'}")
        while await self._wait_for_tick(deadline):
            await self.collect()
            deadline += interval
            now = loop.time()
            if deadline < now:
                # skip ticks missed during a slow fetch
                missed = int((now - deadline) // interval) + 1
                deadline += missed * interval
        logger.info("Collector stopped")
