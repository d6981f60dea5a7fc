import logging

from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configures Rich log output for the CLI and returns the package logger.

    HTTP client loggers are held at WARNING so request lines do not drown
    agent events at INFO.

    Args:
        level: Root logging level name.

    Returns:
        The ``agentloop`` logger.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger("agentloop")
