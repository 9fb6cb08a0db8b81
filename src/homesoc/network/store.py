"""Single-slot persistence of the most recent snapshot."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from homesoc.network.models import Snapshot
from homesoc.utils import atomic_write_json

logger = logging.getLogger(__name__)


class StateStore:
    """Keeps the latest snapshot as the baseline for the next cycle."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> Snapshot | None:
        """Load the previous snapshot.

        A missing, unreadable or corrupt file means "no baseline", never
        an error.
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return Snapshot.model_validate(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot.

        Raises:
            PersistError: If the file cannot be written
        """
        atomic_write_json(self.path, snapshot.to_json())
        logger.debug(f"Saved snapshot to {self.path}")
