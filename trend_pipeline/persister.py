import asyncio
import logging

from trend_pipeline.point_encoder import encode_point, new_batch

logger = logging.getLogger(__name__)


class Persister:
    def __init__(self, config, writer, queue, quit_event, done_event):
        self.config = config
        self.writer = writer
        self.queue = queue
        self.quit_event = quit_event
        self.done_event = done_event
        self.write_count = 0
        self.error_count = 0

    async def _next_tick(self):
        """Waits for a queued tick; None once quit is signalled."""
        if self.quit_event.is_set():
            return None
        get_task = asyncio.ensure_future(self.queue.get())
        quit_task = asyncio.ensure_future(self.quit_event.wait())
        try:
            await asyncio.wait({get_task, quit_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (get_task, quit_task):
                if not task.done():
                    task.cancel()
        if quit_task.done():
            if get_task.done() and not get_task.cancelled() and get_task.exception() is None:
                # dequeued alongside quit, keep it in the shutdown count
                self.queue.put_nowait(get_task.result())
            return None
        return get_task.result()

    async def persist(self, tick):
        try:
            point = encode_point(tick, self.config.convert)
            await self.writer.write(new_batch(point))
        except Exception as e:
            self.error_count += 1
            logger.error(f"write: {e}")
            return False
        self.write_count += 1
        logger.info(f"wrote to influx: {point.name}")
        return True

    async def run(self):
        try:
            while True:
                tick = await self._next_tick()
                if tick is None:
                    break
                await self.persist(tick)
            if not self.queue.empty():
                logger.warning(f"Discarding {self.queue.qsize()} queued ticks on shutdown")
            logger.info(f"Persister stopped after {self.write_count} writes, {self.error_count} failures")
        finally:
            self.done_event.set()
