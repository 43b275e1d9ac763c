"""Persist generated artifacts, one file per definition."""

from pathlib import Path

from .._logging import logger
from .lua import Artifact


def write_artifacts(artifacts: list[Artifact], output_dir: str | Path) -> list[Path]:
    """Write artifacts below ``output_dir``, mirroring their namespace path."""
    written: list[Path] = []
    for artifact in artifacts:
        path = Path(output_dir) / artifact.relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(artifact.text)
        logger.debug("wrote %s", path)
        written.append(path)
    return written
