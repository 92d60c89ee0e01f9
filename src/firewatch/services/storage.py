"""Durable snapshot store - one JSON file per domain under the public root."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from firewatch.models.enums import Domain

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Writes and reads the last successfully merged payload of each domain.

    Files are replaced wholesale: the payload is written to a temp file in the same
    directory and moved over the target, so readers never see a partial file.
    """

    def __init__(self, public_root: str | Path):
        self.root = Path(public_root)

    def path_for(self, domain: Domain) -> Path:
        return self.root / Domain(domain).snapshot_name

    def write(self, domain: Domain, value: Any) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.path_for(domain)
        payload = json.dumps(value, separators=(",", ":"))

        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Wrote %s snapshot (%d bytes) to %s", Domain(domain).value, len(payload), target)
        return target

    def read(self, domain: Domain) -> Any:
        """Load a persisted snapshot.

        Raises FileNotFoundError if it was never written and ValueError if it is not
        valid JSON.
        """
        path = self.path_for(domain)
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)

    def exists(self, domain: Domain) -> bool:
        return self.path_for(domain).is_file()
