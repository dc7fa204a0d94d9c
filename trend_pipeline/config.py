import argparse
import os


def _env_flag(name, default="False"):
    return os.getenv(name, default).lower() == "true"


class Config:
    def __init__(self):
        self.api_base_url = os.getenv("CMC_API_BASE_URL", "https://api.coinmarketcap.com")
        self.influx_addr = os.getenv("INFLUX_ADDR", "https://influx.skapa.xyz")
        self.influx_db = os.getenv("INFLUX_DB", "crypto")
        self.retention_policy = os.getenv("INFLUX_RETENTION_POLICY", "autogen")
        self.username = os.getenv("INFLUX_USER", "")
        self.password = os.getenv("INFLUX_PASSWORD", "")
        self.crypto = os.getenv("CRYPTO", "").lower()
        self.convert = os.getenv("CONVERT", "aud").lower()
        # coinmarketcap only refreshes its ticker every 5 minutes
        self.collect_interval = positive_seconds(os.getenv("COLLECT_INTERVAL", "300"))
        self.collect_on_start = _env_flag("COLLECT_ON_START")
        self.debug = _env_flag("DEBUG")
        self.telegram_token = os.getenv("TELEGRAM_TOKEN", "")
        self.telegram_chat_id = os.getenv("TELEGRAM_CHAT_ID", "")

    @property
    def bucket(self):
        return f"{self.influx_db}/{self.retention_policy}"

    @classmethod
    def from_args(cls, argv=None):
        config = cls()
        parser = build_parser(config)
        args = parser.parse_args(argv)
        config.influx_addr = args.influx
        config.influx_db = args.db
        config.retention_policy = args.rp
        config.username = args.user
        config.password = args.password
        config.crypto = args.crypto.lower()
        config.convert = args.convert.lower()
        config.collect_interval = args.interval
        config.collect_on_start = args.collect_on_start
        config.debug = args.debug
        return config


def positive_seconds(value):
    seconds = float(value)
    if seconds <= 0:
        raise ValueError(f"interval must be positive, got {value}")
    return seconds


def _interval_arg(value):
    try:
        return positive_seconds(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser(defaults):
    parser = argparse.ArgumentParser(
        description="Poll coinmarketcap tickers and push them to influxdb"
    )
    parser.add_argument('--influx', type=str, default=defaults.influx_addr,
                        help="Address of influxdb")
    parser.add_argument('--db', type=str, default=defaults.influx_db,
                        help="Name of the influxdb database to push values to")
    parser.add_argument('--rp', type=str, default=defaults.retention_policy,
                        help="Retention policy of the influxdb database")
    parser.add_argument('--user', type=str, default=defaults.username,
                        help="Username for the influxdb")
    parser.add_argument('--pass', dest='password', type=str, default=defaults.password,
                        help="Password for the user of influxdb")
    parser.add_argument('--crypto', type=str, default=defaults.crypto,
                        help="Crypto currency to track, empty will track all available crypto currencies")
    parser.add_argument('--convert', type=str, default=defaults.convert,
                        help="Currency to convert to, i.e. BTC<->AUD")
    parser.add_argument('--interval', type=_interval_arg, default=defaults.collect_interval,
                        help="Seconds between two collections")
    parser.add_argument('--collect-on-start', action='store_true', default=defaults.collect_on_start,
                        help="Collect once right away instead of waiting a full interval")
    parser.add_argument('--debug', action='store_true', default=defaults.debug,
                        help="Enable debug logging")
    return parser
