import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# bound context keys rendered as a "[value]" prefix, in this order
PREFIX_KEYS = ("host", "stage")

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSSSSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[rel_path]}</cyan>:<cyan>{line}</cyan> - <level>{extra[formatted_prefix]}{message}</level>"
)


def enrich_record(record):
    # 计算相对路径
    file_path = Path(record["file"].path)
    try:
        relative_path = file_path.relative_to(Path.cwd())
    except ValueError:
        relative_path = file_path
    record["extra"]["rel_path"] = str(relative_path)

    prefix_parts = [f"[{record['extra'][k]}]" for k in PREFIX_KEYS if record["extra"].get(k)]
    record["extra"]["formatted_prefix"] = " ".join(prefix_parts) + " " if prefix_parts else ""
    return True


def configure_logger(verbose: bool = False, log_file: Optional[str] = None):
    level = "DEBUG" if verbose else "INFO"
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=level,
        colorize=True,
        filter=enrich_record,
    )
    if log_file:
        logger.add(log_file, format=LOG_FORMAT, level="DEBUG", filter=enrich_record)
