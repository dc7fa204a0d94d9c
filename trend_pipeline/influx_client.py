import aiohttp
import logging
from urllib.parse import urlparse

from influxdb_client import WritePrecision
from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync

from trend_pipeline.errors import SinkError

logger = logging.getLogger(__name__)


class InfluxWriter:
    def __init__(self, config):
        self.config = config
        parsed = urlparse(self.config.influx_addr)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            logger.error(f"Invalid influxdb address {self.config.influx_addr!r}")
            raise SinkError(f"unsupported protocol scheme or missing host: {self.config.influx_addr!r}")
        token = None
        if self.config.username or self.config.password:
            token = f"{self.config.username}:{self.config.password}"
        try:
            # influxdb 1.8+ compatibility: user:password token, "db/rp" bucket, org unused
            self.client = InfluxDBClientAsync(
                url=self.config.influx_addr, token=token, org="-",
                timeout=aiohttp.ClientTimeout(total=None),
            )
            self.write_api = self.client.write_api()
        except Exception as e:
            logger.error(f"Failed to initialize influxdb client: {e}")
            raise SinkError(f"Failed to initialize influxdb client: {e}") from e
        self.bucket = self.config.bucket
        logger.info(f"Influxdb client initialized for {self.config.influx_addr}, bucket {self.bucket}")

    async def write(self, batch):
        records = [point.to_influx() for point in batch]
        logger.debug(f"Writing {len(records)} points into {self.bucket}")
        await self.write_api.write(bucket=self.bucket, record=records, write_precision=WritePrecision.S)

    async def close(self):
        await self.client.close()
