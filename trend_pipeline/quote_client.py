import aiohttp
import logging

from trend_pipeline.errors import DecodeError, FetchError
from trend_pipeline.models import Tick

logger = logging.getLogger(__name__)


class QuoteClient:
    """Reads tickers from the coinmarketcap v1 ticker endpoint.

    Calls are never retried and carry no timeout; every error is raised as a
    FetchError for the caller to deal with.
    """

    def __init__(self, config, session=None):
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None

    async def fetch_one(self, symbol, convert=""):
        if not symbol:
            raise FetchError("crypto currency not specified")
        url = f"{self.config.api_base_url}/v1/ticker/{symbol}/"
        params = {'convert': convert} if convert else {}
        records = await self._get_records(url, params)
        if not records:
            raise FetchError(f"empty ticker response for {symbol}")
        return Tick.from_json(records[0])

    async def fetch_all(self, convert=""):
        url = f"{self.config.api_base_url}/v1/ticker/"
        params = {'limit': 0}
        if convert:
            params['convert'] = convert
        records = await self._get_records(url, params)
        return [Tick.from_json(record) for record in records]

    async def _get_records(self, url, params):
        logger.debug(f"GET {url} {params}")
        try:
            async with self.session.get(url, params=params) as response:
                if response.status != 200:
                    raise FetchError(f"HTTP error {response.status} for {url}: {await response.text()}")
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise FetchError(str(e)) from e
        except ValueError as e:
            raise DecodeError(f"invalid JSON from {url}: {e}") from e
        if not isinstance(data, list):
            raise DecodeError(f"expected a JSON array from {url}, got {type(data).__name__}")
        return data
