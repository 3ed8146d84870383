"""Shared versioned contracts for alloc-doctor JSON outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from alloc_doctor import __version__ as TOOL_VERSION

SCHEMA_VERSION = "1.0.0"

CONTRACT_VERSIONS = {
    "alloc_doctor.validate": "1.0.0",
    "alloc_doctor.recommend": "1.0.0",
    "alloc_doctor.corrections": "1.0.0",
    "alloc_doctor.search": "1.0.0",
    "alloc_doctor.export_summary": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    command: str,
    input_paths: dict[str, Path | None],
    status: str = "ok",
    output_path: Path | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "alloc-doctor",
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_files": {kind: str(path) if path else None for kind, path in input_paths.items()},
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def wrap_payload(name: str, body: dict[str, Any], run_summary: dict[str, Any]) -> dict[str, Any]:
    """Stamp a payload with its contract, schema and tool versions."""
    return {
        "contract": build_contract(name),
        "schema_version": SCHEMA_VERSION,
        "tool_version": TOOL_VERSION,
        **body,
        "run_summary": run_summary,
    }
