import pytest
import asyncio
import os
import signal
from unittest.mock import AsyncMock, MagicMock
from trend_pipeline.config import Config
from trend_pipeline.errors import FetchError
from trend_pipeline.models import Tick
from trend_pipeline.supervisor import EXIT_FAILURE, EXIT_OK, Supervisor, run_pipeline


@pytest.fixture
def config():
    config = Config()
    config.crypto = ""
    config.convert = "aud"
    config.collect_interval = 0.01
    config.collect_on_start = True
    config.telegram_token = ""
    return config


@pytest.fixture
def mock_notifier():
    notifier = AsyncMock()
    notifier.send_message = AsyncMock()
    return notifier


@pytest.fixture
def mock_writer():
    writer = AsyncMock()
    writer.write = AsyncMock(return_value=None)
    return writer


@pytest.fixture
def quote_client(ticker_record):
    client = AsyncMock()
    client.fetch_all = AsyncMock(return_value=[Tick.from_json(ticker_record())])
    return client


async def wait_until(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_stop_request_shuts_down_cleanly(config, quote_client, mock_writer, mock_notifier):
    supervisor = Supervisor(config, quote_client, mock_writer, mock_notifier)
    task = asyncio.create_task(supervisor.run())

    await wait_until(lambda: mock_writer.write.await_count >= 1)
    supervisor.request_stop()
    code = await asyncio.wait_for(task, timeout=2.0)

    assert code == EXIT_OK
    assert supervisor.done_event.is_set()
    mock_notifier.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_failure_exits_without_writing(config, quote_client, mock_writer, mock_notifier):
    quote_client.fetch_all = AsyncMock(side_effect=FetchError("connection refused"))
    supervisor = Supervisor(config, quote_client, mock_writer, mock_notifier)

    code = await asyncio.wait_for(supervisor.run(), timeout=2.0)

    assert code == EXIT_FAILURE
    mock_writer.write.assert_not_called()
    mock_notifier.send_message.assert_awaited_once()
    assert "connection refused" in mock_notifier.send_message.await_args.args[0]


@pytest.mark.asyncio
async def test_write_failure_keeps_pipeline_running(config, quote_client, mock_notifier):
    writer = AsyncMock()
    writer.write = AsyncMock(side_effect=[RuntimeError("timeout"), None, None, None, None, None])
    supervisor = Supervisor(config, quote_client, writer, mock_notifier)
    task = asyncio.create_task(supervisor.run())

    await wait_until(lambda: writer.write.await_count >= 2)
    supervisor.request_stop()
    code = await asyncio.wait_for(task, timeout=2.0)

    assert code == EXIT_OK
    assert quote_client.fetch_all.await_count >= 2
    mock_notifier.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_request_stop_is_idempotent(config, quote_client, mock_writer):
    supervisor = Supervisor(config, quote_client, mock_writer)
    supervisor.request_stop()
    supervisor.request_stop(signal.SIGTERM)
    assert supervisor.quit_event.is_set()
    code = await asyncio.wait_for(supervisor.run(), timeout=2.0)
    assert code == EXIT_OK
    quote_client.fetch_all.assert_not_called()


@pytest.mark.asyncio
async def test_sigterm_sets_quit_event(config, quote_client, mock_writer):
    supervisor = Supervisor(config, quote_client, mock_writer)
    supervisor.install_signal_handlers()
    try:
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(supervisor.quit_event.wait(), timeout=1.0)
    finally:
        supervisor.remove_signal_handlers()


@pytest.mark.asyncio
async def test_run_pipeline_invalid_destination_is_fatal(config):
    config.influx_addr = "influx.example.test:8086"
    assert await run_pipeline(config) == EXIT_FAILURE


@pytest.mark.asyncio
async def test_persister_failure_is_fatal(config, quote_client, mock_writer, mock_notifier):
    config.collect_on_start = False
    config.collect_interval = 60
    supervisor = Supervisor(config, quote_client, mock_writer, mock_notifier)
    broken_queue = MagicMock()
    broken_queue.get = AsyncMock(side_effect=RuntimeError("queue closed"))
    supervisor.queue = broken_queue

    code = await asyncio.wait_for(supervisor.run(), timeout=2.0)

    assert code == EXIT_FAILURE
    assert supervisor.collector_task.cancelled()
    mock_writer.write.assert_not_called()
    mock_notifier.send_message.assert_awaited_once()
    assert "queue closed" in mock_notifier.send_message.await_args.args[0]
    assert mock_notifier.send_message.await_args.kwargs["component"] == "persister"


@pytest.mark.asyncio
async def test_cancelled_persister_is_fatal(config, quote_client, mock_writer, mock_notifier):
    config.collect_on_start = False
    config.collect_interval = 60
    supervisor = Supervisor(config, quote_client, mock_writer, mock_notifier)
    task = asyncio.create_task(supervisor.run())

    await wait_until(lambda: supervisor.persister_task is not None)
    await asyncio.sleep(0.01)
    supervisor.persister_task.cancel()
    code = await asyncio.wait_for(task, timeout=2.0)

    assert code == EXIT_FAILURE
    assert supervisor.collector_task.cancelled()
    mock_notifier.send_message.assert_awaited_once()
    assert mock_notifier.send_message.await_args.kwargs["component"] == "persister"
