import sys
from pathlib import Path

from loguru import logger

# Tags written by the launch path: relay polling, bundle submission, resubmission
LAUNCH_TAGS = ("[RELAY]", "[BUNDLE]", "[RETRY]", "[SDK]")


def _is_launch_record(record: dict) -> bool:
    return record["message"].startswith(LAUNCH_TAGS)


def setup_logger(*, json_logs: bool = False, level: str = "INFO", log_dir: str = "logs") -> Path:
    """Configure loguru for the toolkit and return the log directory.

    Console shows `level` and above. The main file always captures DEBUG.
    A second file keeps only launch records so one create_and_buy run
    (every bundle id, tip signature and retry) can be read on its own.
    """
    directory = Path(log_dir)
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=level.upper())
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
            level=level.upper(),
            colorize=True,
        )

    logger.add(
        directory / "pumpbundler_{time:YYYY-MM-DD}.log",
        rotation="20 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
    logger.add(
        directory / "launches_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="30 days",
        level="DEBUG",
        filter=_is_launch_record,
        serialize=json_logs,
    )
    return directory
