from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .installer import RunOutcome
from .pipeline import RunState
from .request import InstallRequest

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def build_summary(
    *,
    request: Optional[InstallRequest],
    state: RunState,
    outcome: RunOutcome,
    error: Optional[BaseException] = None,
    archived_log: Optional[Path] = None,
) -> Dict[str, Any]:
    res = state.resolution
    summary: Dict[str, Any] = {
        "request": asdict(request) if request else None,
        "steps": list(state.completed_steps),
        "resolution": None,
        "outcome": {
            "status": outcome.status.value,
            "exit_code": outcome.exit_code,
            "process_exit_code": outcome.process_exit_code,
            "reason": outcome.reason,
        },
        "errors": [],
        "log": str(archived_log) if archived_log else None,
    }
    if res is not None:
        summary["resolution"] = {
            "installer_path": str(res.installer_path),
            "relative_path": res.relative_path,
            "source": res.source,
            "trail": [s.value for s in res.trail],
        }
    if error is not None:
        summary["errors"].append({"type": type(error).__name__, "error": str(error)})
    return summary


def load_summary(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    if _detect_format(p) == "yaml":
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Summary file must be an object/dict, got {type(data)}")
    return data


def save_summary(path: str, summary: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if _detect_format(p) == "yaml":
        p.write_text(yaml.safe_dump(summary, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(summary, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    logger.info("Run summary written to %s", p)
