import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("copperx_bot")


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the bot process"""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, level.upper(), logging.INFO)
    )
    # python-telegram-bot logs every polling request through httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
