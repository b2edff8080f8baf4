import logging
from pathlib import Path
from typing import Iterable, Optional

NOISY_LOGGERS = ("urllib3", "requests", "asyncio")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure logging for httpfanout runs.

    Parameters
    ----------
    level:
        Level name for httpfanout loggers (e.g., "INFO", "DEBUG").
    log_file:
        Optional log file path. Logs go to stderr when omitted.
    quiet:
        Third-party loggers held at WARNING so per-connection chatter
        from the transport stays out of dispatch logs.
    """

    logging_level = getattr(logging, str(level).upper(), logging.INFO)
    log_kwargs = {
        "level": logging_level,
        "format": "[%(levelname)s] %(name)s (%(threadName)s) - %(message)s",
    }

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        log_kwargs["filename"] = log_file

    logging.basicConfig(**log_kwargs)
    for name in quiet:
        logging.getLogger(name).setLevel(max(logging_level, logging.WARNING))
