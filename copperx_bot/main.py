import sys

from copperx_bot.config.config import load_settings
from copperx_bot.errors import ConfigurationError
from copperx_bot.handlers.adapter import build_application
from copperx_bot.services.container import build_services
from copperx_bot.session.store import SessionManager, create_session_store
from copperx_bot.utils.logger import logger, setup_logging


def main():
    """Initialize and start the bot"""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging()
        for problem in e.problems:
            logger.error(f"Configuration error: {problem}")
        sys.exit(1)

    setup_logging(settings.log_level)
    store = create_session_store(settings)
    services = build_services(settings)
    application = build_application(settings, services, SessionManager(store))

    logger.info(f"Bot started ({settings.session_driver} sessions)")
    application.run_polling()


if __name__ == "__main__":
    main()
