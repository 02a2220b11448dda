"""Prometheus file_sd output for discovered EC2 targets."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..config import OutputConfig
from ..discovery.labels import ADDRESS_LABEL
from ..exceptions import OutputError
from ..logging_config import log_fields

logger = logging.getLogger(__name__)

# Readable by a Prometheus or vmagent process running as another user
TARGETS_FILE_MODE = 0o644


def build_target_groups(label_maps: list[dict[str, str]]) -> list[dict[str, Any]]:
    """Convert label maps into file_sd target groups, one target per group."""
    return [
        {
            "targets": [labels[ADDRESS_LABEL]],
            "labels": {k: v for k, v in labels.items() if k != ADDRESS_LABEL},
        }
        for labels in label_maps
    ]


class FileSDWriter:
    """Writes target groups to a JSON file, replacing it atomically."""

    def __init__(self, config: OutputConfig):
        self._path = Path(config.path)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, label_maps: list[dict[str, str]]) -> None:
        document = json.dumps(build_target_groups(label_maps), indent=2, sort_keys=True)
        directory = self._path.parent

        try:
            directory.mkdir(parents=True, exist_ok=True)
            # Same directory as the target so os.replace stays on one filesystem
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
            try:
                with os.fdopen(fd, "w") as f:
                    os.fchmod(f.fileno(), TARGETS_FILE_MODE)
                    f.write(document)
                    f.write("\n")
                os.replace(tmp_name, self._path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise OutputError(f"Cannot write targets file {self._path}: {exc}") from exc

        logger.info(
            "Wrote %d targets to %s", len(label_maps), self._path,
            extra=log_fields(total_targets=len(label_maps), path=str(self._path)),
        )
