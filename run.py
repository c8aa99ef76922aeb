try:
    import uvloop
except ImportError:
    uvloop = None

from cli import cli
from config.configs import configs
from utils.logger_utils import configure_logging, get_logger

configure_logging(log_level=configs.app.log_level)
logger = get_logger("Run Entry Point")

if __name__ == "__main__":
    if uvloop:
        uvloop.install()
        logger.debug("uvloop installed successfully.")
    else:
        logger.debug("uvloop not found, using default asyncio event loop.")

    cli()
