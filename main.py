import asyncio
import logging
import sys
from trend_pipeline.config import Config
from trend_pipeline.notifier import exception_handler
from trend_pipeline.supervisor import EXIT_FAILURE, run_pipeline

logger = logging.getLogger(__name__)


async def main(argv=None):
    try:
        config = Config.from_args(argv)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE
    logging.getLogger().setLevel(logging.DEBUG if config.debug else logging.INFO)
    sys.excepthook = exception_handler
    logger.info("Starting crypto trend pipeline")
    return await run_pipeline(config)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    sys.exit(asyncio.run(main()))
