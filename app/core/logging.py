import logging
from typing import Optional
from loguru import logger

from app.core.config import settings


# Chatty third-party loggers, only useful while debugging
NOISY_LOGGERS = ("sqlalchemy.engine", "python_multipart", "multipart")


class InterceptHandler(logging.Handler):
    """Forwards standard `logging` records (uvicorn, SQLAlchemy) to loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk out of the logging module so loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame.f_back and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(log_file: Optional[str] = None):
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if settings.debug else logging.WARNING)

    logger.add(
        log_file or settings.log_file,
        rotation="500 MB",
        compression="zip",
        level="DEBUG" if settings.debug else "INFO",
        backtrace=True,
        diagnose=settings.debug,
    )
    logger.info(f"{settings.app_name} logging to {log_file or settings.log_file}")
