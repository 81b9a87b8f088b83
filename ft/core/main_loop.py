import argparse
import json
import os
import sys
import tempfile
import time
from pathlib import Path
from typing import Dict, Any, List, Optional

from .. import __version__
from .config import load_config
from .errors import StoreError
from .pipeline import ReportPipeline
from ..adapters.store import build_store
from ..domain.markers import markers_to_geojson
from ..domain.policy import VerificationPolicyProvider
from ..utils.log import log_line, setup_logging

def write_geojson(path: Path, data: Dict[str, Any]) -> None:
    """Atomic write; map clients may read the file at any moment."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
        tmp_name = None
    finally:
        if tmp_name:
            Path(tmp_name).unlink(missing_ok=True)

def run_cycle(pipeline: ReportPipeline, markers_path: Path) -> int:
    """Sweep expired sightings, then publish the current marker set. Returns marker count."""
    pipeline.sweep_expired()
    markers = pipeline.visible_markers()
    write_geojson(markers_path, markers_to_geojson(markers))
    verified = sum(1 for m in markers if m.status.value == "verified")
    log_line(f"CHECKS | markers={len(markers)} verified={verified} pending={len(markers) - verified}")
    return len(markers)

def run_loop(cfg: Dict[str, Any], one_shot: bool = False) -> None:
    setup_logging(Path(cfg.get("log_dir") or "logs"))
    log_line(f"MAIN LOOP STARTED (sightings v{__version__}) store={cfg.get('store')}")

    store = build_store(cfg)
    policy = VerificationPolicyProvider(store)
    pipeline = ReportPipeline(store, policy, cfg)
    markers_path = Path(cfg.get("markers_path") or "markers.geojson")
    interval = float(cfg.get("sweep_interval_s", 300))

    policy.subscribe(lambda p: log_line(f"POLICY | mode={p.mode.value} method={p.method.value}"))
    if not one_shot:
        policy.start_polling(float(cfg.get("policy_poll_s", 30)))

    try:
        while True:
            try:
                run_cycle(pipeline, markers_path)
            except StoreError as e:
                log_line(f"MAIN LOOP STORE ERROR | err={e!r}", "ERROR")
            if one_shot:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        log_line("MAIN LOOP STOPPED (KeyboardInterrupt)")
    finally:
        policy.stop_polling()

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Sweep expired sightings and export map markers")
    parser.add_argument("--config", default="config.json")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    args = parser.parse_args(argv)
    cfg = load_config(Path(args.config))
    run_loop(cfg, one_shot=args.once)
    return 0

if __name__ == "__main__":
    sys.exit(main())
