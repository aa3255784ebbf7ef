"""
Default target crates from a cargo workspace.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from .errors import ManifestError


logger = logging.getLogger(__name__)


def workspace_dependencies(manifest_path: Optional[Union[str, Path]] = None) -> List[str]:
    """Names of the dependencies declared by the workspace members.

    Args:
        manifest_path: Path of Cargo.toml; cargo's own lookup when omitted

    Raises:
        ManifestError: If cargo is missing or `cargo metadata` fails
    """
    cmd = ["cargo", "metadata", "--format-version", "1", "--no-deps"]
    if manifest_path is not None:
        cmd += ["--manifest-path", str(manifest_path)]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=120)
    except FileNotFoundError as exc:
        raise ManifestError("cargo executable not found") from exc
    except subprocess.TimeoutExpired as exc:
        raise ManifestError(f"cargo metadata timed out: {' '.join(cmd)}") from exc

    if result.returncode != 0:
        raise ManifestError(f"cargo metadata failed: {result.stderr.strip()}")

    try:
        metadata = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise ManifestError("cargo metadata returned invalid JSON") from exc

    members = set(metadata.get("workspace_members", []))
    names: List[str] = []
    for package in metadata.get("packages", []):
        if package.get("id") not in members:
            continue
        for dep in package.get("dependencies", []):
            if dep["name"] not in names:
                names.append(dep["name"])

    logger.info("Found %d workspace dependencies", len(names))
    return names
