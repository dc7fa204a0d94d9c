import aiohttp
import logging
import traceback

logger = logging.getLogger(__name__)

PIPELINE_NAME = "crypto-trend"


def format_message(message, component=None):
    source = f"{PIPELINE_NAME}/{component}" if component else PIPELINE_NAME
    return f"*[{source}]* {message}"


class TelegramNotifier:
    """Reports fatal pipeline failures to a Telegram chat. Never raises."""

    def __init__(self, config):
        self.config = config
        self.base_url = f"https://api.telegram.org/bot{self.config.telegram_token}/sendMessage"

    @property
    def enabled(self):
        return bool(self.config.telegram_token and self.config.telegram_chat_id)

    async def send_message(self, message, component=None):
        text = format_message(message, component)
        if not self.enabled:
            logger.debug(f"Telegram notifier disabled, dropping: {text}")
            return False
        payload = {"chat_id": self.config.telegram_chat_id, "text": text, "parse_mode": "Markdown"}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(self.base_url, json=payload) as response:
                    if response.status != 200:
                        logger.error(f"Telegram rejected notification ({response.status}): {await response.text()}")
                        return False
        except Exception as e:
            logger.error(f"Could not reach Telegram: {e}")
            return False
        logger.info(f"Notified Telegram chat {self.config.telegram_chat_id}")
        return True


def exception_handler(exc_type, exc_value, exc_traceback):
    tb_lines = traceback.format_exception(exc_type, exc_value, exc_traceback)
    logger.critical(f"Uncaught exception:\n{''.join(tb_lines)}")
