import json
from pathlib import Path
from typing import Any, Dict, Optional

from . import constants as C
from ..utils.log import log_line

# Files:
# - config.json   (tracked)     thresholds, store selection, paths
# - secrets.json  (local only)  {"access_token": "...", "api_key": "..."}
DEFAULT_CONFIG: Dict[str, Any] = {
    "store": "json",                      # "json" | "firestore"
    "data_path": "sightings.json",
    "firestore_project": "",
    "firestore_database": "(default)",
    "user_agent": "FoodTruckSightings/0.3",
    "quorum_threshold": C.QUORUM_THRESHOLD,
    "proximity_radius_m": C.PROXIMITY_RADIUS_M,
    "similarity_window_min": C.SIMILARITY_WINDOW_MIN,
    "retention_hours": C.RETENTION_HOURS,
    "sweep_interval_s": 300,
    "policy_poll_s": 30,
    "markers_path": "markers.geojson",
    "log_dir": "logs",
}

def _read_json_object(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log_line(f"CONFIG | unreadable {path.name} | err={e!r}", "WARN")
        return {}
    if not isinstance(data, dict):
        log_line(f"CONFIG | {path.name} is not a JSON object, ignored", "WARN")
        return {}
    return data

def load_config(path: Optional[Path] = None, secrets_path: Optional[Path] = None) -> Dict[str, Any]:
    """DEFAULT_CONFIG <- config.json <- secrets.json (later wins)."""
    path = Path(path or "config.json")
    secrets_path = Path(secrets_path) if secrets_path else path.parent / "secrets.json"
    cfg = dict(DEFAULT_CONFIG)
    cfg.update(_read_json_object(path))
    cfg.update(_read_json_object(secrets_path))
    return cfg
