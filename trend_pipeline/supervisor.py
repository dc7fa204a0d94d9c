import asyncio
import logging
import signal

from trend_pipeline.data_collector import Collector
from trend_pipeline.errors import SinkError
from trend_pipeline.influx_client import InfluxWriter
from trend_pipeline.notifier import TelegramNotifier
from trend_pipeline.persister import Persister
from trend_pipeline.quote_client import QuoteClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class Supervisor:
    """Runs one collector and one persister until a stop signal or a fatal error."""

    def __init__(self, config, quote_client, writer, notifier=None):
        self.config = config
        self.quote_client = quote_client
        self.writer = writer
        self.notifier = notifier
        self.queue = asyncio.Queue()
        self.quit_event = asyncio.Event()
        self.done_event = asyncio.Event()
        self.collector_task = None
        self.persister_task = None

    def install_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.request_stop, sig)

    def remove_signal_handlers(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    def request_stop(self, sig=None):
        if self.quit_event.is_set():
            return
        if sig is not None:
            logger.warning(f"Received {signal.Signals(sig).name}, shutting down...")
        else:
            logger.warning("Stop requested, shutting down...")
        self.quit_event.set()

    async def _fail(self, task_name, error, pending):
        logger.error(f"{task_name} failed: {error}")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if self.notifier:
            await self.notifier.send_message(f"stopped: {error}", component=task_name)
        return EXIT_FAILURE

    async def run(self):
        collector = Collector(self.config, self.quote_client, self.queue, self.quit_event)
        persister = Persister(self.config, self.writer, self.queue, self.quit_event, self.done_event)
        self.collector_task = asyncio.create_task(collector.run(), name="collector")
        self.persister_task = asyncio.create_task(persister.run(), name="persister")
        tasks = {self.collector_task, self.persister_task}

        while not self.persister_task.done():
            finished, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in finished:
                tasks.discard(task)
                if task.cancelled():
                    return await self._fail(task.get_name(), "cancelled", tasks)
                if task.exception() is not None:
                    return await self._fail(task.get_name(), task.exception(), tasks)

        await self.done_event.wait()
        # a collector still inside a fetch has nobody left to persist its ticks
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Pipeline shut down cleanly")
        return EXIT_OK


async def run_pipeline(config):
    notifier = TelegramNotifier(config)
    try:
        writer = InfluxWriter(config)
    except SinkError as e:
        await notifier.send_message(f"could not start: {e}", component="influxdb")
        return EXIT_FAILURE
    try:
        async with QuoteClient(config) as quote_client:
            supervisor = Supervisor(config, quote_client, writer, notifier)
            supervisor.install_signal_handlers()
            try:
                return await supervisor.run()
            finally:
                supervisor.remove_signal_handlers()
    finally:
        await writer.close()
