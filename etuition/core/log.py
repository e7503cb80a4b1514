import logging

from etuition.core import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level or config.LOG_LEVEL)
        return
    logging.basicConfig(level=level or config.LOG_LEVEL, format=LOG_FORMAT)
