import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Configure the root logger for the CLI.

    Console output goes to stderr so command results on stdout stay valid JSON.

    Args:
        level: Log level name (INFO, DEBUG, ...). Unknown names fall back to INFO.
        log_dir: If provided, also write a timestamped log file in this directory.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root = logging.getLogger()
    numeric_level = logging.getLevelName(level.upper())
    known_level = isinstance(numeric_level, int)
    root.setLevel(numeric_level if known_level else logging.INFO)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if not known_level:
        root.warning("Unknown log level %r, using INFO", level)

    if log_dir:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y-%m-%d__%H_%M_%S")
            log_file = log_dir / f"opnmanager-log_{timestamp}.log"
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            root.info("Logging to file: %s", log_file)
        except PermissionError as exc:
            root.error(
                "File logging disabled (permission error writing to %s, uid=%s). Error: %s",
                str(log_dir),
                os.getuid() if hasattr(os, "getuid") else "n/a",
                exc,
            )
        except OSError as exc:
            root.error("File logging disabled (OS error creating log file under %s): %s", str(log_dir), exc)
