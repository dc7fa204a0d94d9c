from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List

from influxdb_client import Point, WritePrecision

from trend_pipeline.models import Tick


@dataclass(frozen=True)
class MetricPoint:
    name: str
    tags: Dict[str, str]
    fields: Dict[str, float]
    time: datetime

    def to_influx(self) -> Point:
        point = Point(self.name)
        for key, value in self.tags.items():
            point.tag(key, value)
        for key, value in self.fields.items():
            point.field(key, value)
        return point.time(self.time, WritePrecision.S)


Batch = List[MetricPoint]


def encode_point(tick: Tick, convert: str) -> MetricPoint:
    """Turn a tick into a point named after the coin and tagged with its symbol.

    Fields always hold the usd values (and btc for price); the ``convert``
    currency is added when it is set and not one of those.
    Raises UnsupportedCurrencyError for a currency the api cannot quote.
    """
    fields = {}
    fields.update(tick.price.fields(convert, base=("usd", "btc")))
    fields.update(tick.volume.fields(convert))
    fields.update(tick.market_cap.fields(convert))
    return MetricPoint(
        name=tick.id,
        tags={"symbol": tick.symbol},
        fields=fields,
        time=tick.last_updated,
    )


def new_batch(*points: MetricPoint) -> Batch:
    return list(points)
