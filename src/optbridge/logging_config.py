from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

FORMAT = "%(asctime)s %(levelname)s | %(name)s | %(message)s"

log = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", report_dir: str | Path = "Report") -> Path | None:
    """Configure root logging; at DEBUG also write everything to a report file.

    Returns the path of the debug file, or None when no file was opened.
    """
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=lvl, format=FORMAT)
    logging.getLogger().setLevel(lvl)

    if str(level).upper() != "DEBUG":
        return None
    out_dir = Path(report_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = out_dir / f"optbridge_debug_{ts}.txt"
    fh = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(FORMAT))
    logging.getLogger().addHandler(fh)
    log.info("writing DEBUG logs to %s", log_path)
    return log_path


__all__ = ["setup_logging"]
