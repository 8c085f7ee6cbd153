import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence


def output_path(base_name: str, output_dir: Path, now: Optional[datetime] = None) -> Path:
    """Timestamped file name; -1, -2, ... is appended if it already exists."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    path = output_dir / f"{base_name}-{stamp}.csv"
    n = 1
    while path.exists():
        path = output_dir / f"{base_name}-{stamp}-{n}.csv"
        n += 1
    return path


def write_csv(
    rows: List[Dict[str, str]],
    base_name: str,
    output_dir,
    columns: Optional[Sequence[str]] = None,
    now: Optional[datetime] = None,
) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    fieldnames = list(columns) if columns else list(rows[0].keys()) if rows else []

    path = output_path(base_name, output_dir, now)
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
        if fieldnames:
            w.writeheader()
        for r in rows:
            w.writerow({k: "" if r.get(k) is None else r.get(k) for k in fieldnames})

    logging.info(f"Saved {len(rows)} row(s) → {path}")
    return path
