from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from trend_pipeline.errors import DecodeError, UnsupportedCurrencyError

# Currencies the coinmarketcap ticker can convert to.
SUPPORTED_CURRENCIES = (
    "aud", "brl", "btc", "cad", "chf", "clp", "cny", "czk", "dkk", "eur",
    "gbp", "hkd", "huf", "idr", "ils", "inr", "jpy", "krw", "mxn", "myr",
    "nok", "nzd", "php", "pkr", "pln", "rub", "sek", "sgd", "thb", "try",
    "twd", "usd", "zar",
)

BASE_CURRENCIES = ("usd", "btc")

PRICE = "price"
VOLUME_24H = "24h_volume"
MARKET_CAP = "market_cap"


@dataclass(frozen=True)
class CurrencyMetric:
    """One metric (price, 24h volume, market cap) quoted in several currencies."""

    name: str
    values: Mapping[str, Optional[float]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def key(self, currency):
        return f"{self.name}_{currency.lower()}"

    def value(self, currency):
        code = currency.lower()
        if code not in SUPPORTED_CURRENCIES:
            raise UnsupportedCurrencyError(currency)
        # the api leaves out unquoted currencies, they read as zero
        return self.values.get(code) or 0.0

    def fields(self, convert, base=("usd",)):
        out = {self.key(code): self.value(code) for code in base}
        if convert and convert.lower() not in BASE_CURRENCIES:
            out[self.key(convert)] = self.value(convert)
        return out

    @classmethod
    def from_record(cls, name, record):
        values = {}
        for code in SUPPORTED_CURRENCIES:
            key = f"{name}_{code}"
            if key in record:
                values[code] = parse_float(record, key)
        return cls(name, values)


@dataclass(frozen=True)
class Tick:
    id: str
    name: str
    symbol: str
    rank: int
    available_supply: Optional[float]
    total_supply: Optional[float]
    max_supply: Optional[float]
    price: CurrencyMetric
    volume: CurrencyMetric
    market_cap: CurrencyMetric
    last_updated: datetime

    @classmethod
    def from_json(cls, record: Dict[str, Any]) -> "Tick":
        if not isinstance(record, dict):
            raise DecodeError(f"ticker record must be an object, got {type(record).__name__}")
        try:
            return cls(
                id=record["id"],
                name=record.get("name", ""),
                symbol=record["symbol"],
                rank=parse_int(record, "rank"),
                available_supply=parse_float(record, "available_supply"),
                total_supply=parse_float(record, "total_supply"),
                max_supply=parse_float(record, "max_supply"),
                price=CurrencyMetric.from_record(PRICE, record),
                volume=CurrencyMetric.from_record(VOLUME_24H, record),
                market_cap=CurrencyMetric.from_record(MARKET_CAP, record),
                last_updated=parse_timestamp(record, "last_updated"),
            )
        except KeyError as e:
            raise DecodeError(f"ticker record missing field {e}") from e


def _string_field(record, key):
    raw = record.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise DecodeError(f"{key}: expected a quoted number, got {raw!r}")
    return raw


def parse_float(record, key):
    raw = _string_field(record, key)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise DecodeError(f"{key}: {e}") from e


def parse_int(record, key):
    raw = _string_field(record, key)
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError as e:
        raise DecodeError(f"{key}: {e}") from e


def parse_timestamp(record, key):
    raw = _string_field(record, key)
    if raw is None:
        raise DecodeError(f"{key}: missing timestamp")
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise DecodeError(f"{key}: {e}") from e
