import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Any

# Set by setup_logging(); None means stdout only
LOG_DIR: Optional[Path] = None
LOG_NAME = "sightings"

_LOG_LOCK = threading.Lock()

def log_path_for(ts: datetime) -> Optional[Path]:
    """Daily file for the day of `ts`: logs/<name>-YYYY-MM-DD.log."""
    if LOG_DIR is None:
        return None
    return LOG_DIR / f"{LOG_NAME}-{ts.strftime('%Y-%m-%d')}.log"

def setup_logging(log_dir: Path, log_name: str = "sightings") -> Path:
    """
    Route log_line output to a daily file as well as stdout. The date is taken
    per line, so a process running past midnight moves on to the next file.
    Returns today's path.
    """
    global LOG_DIR, LOG_NAME
    LOG_DIR = Path(log_dir)
    LOG_NAME = log_name
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return log_path_for(datetime.now().astimezone())

def reset_logging() -> None:
    global LOG_DIR, LOG_NAME
    LOG_DIR = None
    LOG_NAME = "sightings"

def _append(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(line + "\n")

def log_line(msg: Any, level: str = "INFO") -> str:
    """
    Logging wrapper (single timestamp, readable):
    - Prefix every line with: YYYY-MM-DD // HH:MM:SS+HH:MM -
    - INFO lines carry no level tag, everything else is tagged (WARN | ...).
    Returns the formatted line.
    """
    line = str(msg).strip()
    level = str(level or "INFO").upper()
    if level != "INFO" and line:
        line = f"{level} | {line}"

    with _LOG_LOCK:
        ts = datetime.now().astimezone()
        prefix = ts.strftime("%Y-%m-%d // %H:%M:%S%z")
        if len(prefix) >= 5:
            prefix = prefix[:-2] + ":" + prefix[-2:]

        full = f"{prefix} - {line}" if line else f"{prefix} -"

        path = log_path_for(ts)
        if path:
            try:
                _append(path, full)
            except OSError:
                # never let a full disk take the pipeline down; stdout still has it
                pass

        print(full, flush=True)
    return full

def log_event(event: str, **fields: Any) -> str:
    """EVENT | key=value key=value (stable order, None fields dropped)."""
    parts = [f"{k}={v}" for k, v in fields.items() if v is not None]
    return log_line(" | ".join([event.upper()] + ([" ".join(parts)] if parts else [])))
