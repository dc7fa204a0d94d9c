import pytest


@pytest.fixture
def ticker_record():
    """Builds a coinmarketcap v1 ticker record, numbers quoted as strings."""
    def build(**overrides):
        record = {
            "id": "bitcoin",
            "name": "Bitcoin",
            "symbol": "BTC",
            "rank": "1",
            "price_usd": "50000.0",
            "price_btc": "1.0",
            "24h_volume_usd": "30000000000.0",
            "market_cap_usd": "930000000000.0",
            "available_supply": "18600000.0",
            "total_supply": "18600000.0",
            "max_supply": "21000000.0",
            "percent_change_1h": "0.12",
            "percent_change_24h": "1.5",
            "percent_change_7d": "10.2",
            "last_updated": "1609459200",
            "price_aud": "70000.0",
            "24h_volume_aud": "42000000000.0",
            "market_cap_aud": "1302000000000.0",
        }
        record.update(overrides)
        return record
    return build
