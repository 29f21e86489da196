"""
Checkpoint stores for resumable checking sessions.

A checkpoint is the {progress, results} snapshot of a Session, keyed by a
session key. Stores are best-effort: failures are logged and reported
through return values, never raised into the run.
"""

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError

from lastpost.models.checkpoint import Checkpoint
from lastpost.models.config import CheckpointConfig
from lastpost.models.session import Session
from lastpost.observability.metrics import CHECKPOINT_OPERATIONS
from lastpost.utils.exceptions import StorageError

logger = structlog.get_logger()

_SESSION_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class CheckpointStore(ABC):
    """Durable mapping from session key to a Session snapshot.

    Single writer per key; no cross-process locking.
    """

    def save(
        self, session_key: str, session: Session, estimated_time: Optional[str] = None
    ) -> bool:
        """
        Persist a session snapshot.

        Without ``estimated_time`` the stored estimate is kept. Saving a
        snapshot identical to the stored one leaves the document untouched.

        Returns:
            True if saved successfully
        """
        try:
            previous = self._read(session_key)
        except StorageError:
            previous = None

        if estimated_time is None:
            estimated_time = previous.progress.estimated_time if previous else ""
        checkpoint = Checkpoint.from_session(session, estimated_time)

        if previous is not None and previous.same_snapshot(checkpoint):
            logger.debug("checkpoint_unchanged", session_key=session_key)
            return True

        try:
            self._write(session_key, checkpoint)
        except StorageError as e:
            CHECKPOINT_OPERATIONS.labels(operation="save", status="failed").inc()
            logger.error("checkpoint_save_error", session_key=session_key, error=str(e))
            return False

        CHECKPOINT_OPERATIONS.labels(operation="save", status="success").inc()
        logger.debug(
            "checkpoint_saved",
            session_key=session_key,
            cursor=session.cursor,
            total=session.total,
        )
        return True

    def load_checkpoint(self, session_key: str) -> Optional[Checkpoint]:
        """Load the raw checkpoint document, or None if absent or unreadable"""
        try:
            checkpoint = self._read(session_key)
        except StorageError as e:
            CHECKPOINT_OPERATIONS.labels(operation="load", status="failed").inc()
            logger.error("checkpoint_load_error", session_key=session_key, error=str(e))
            return None

        if checkpoint is None:
            logger.debug("no_checkpoint_found", session_key=session_key)
            return None

        CHECKPOINT_OPERATIONS.labels(operation="load", status="success").inc()
        return checkpoint

    def load(self, session_key: str) -> Optional[Session]:
        """
        Load the session stored under a key.

        Returns:
            Session if a consistent checkpoint exists, None otherwise
        """
        checkpoint = self.load_checkpoint(session_key)
        if checkpoint is None:
            return None

        try:
            session = checkpoint.to_session()
        except ValueError as e:
            logger.error(
                "checkpoint_inconsistent", session_key=session_key, error=str(e)
            )
            return None

        logger.info(
            "checkpoint_loaded",
            session_key=session_key,
            cursor=session.cursor,
            total=session.total,
        )
        return session

    def clear(self, session_key: str) -> bool:
        """
        Remove the checkpoint for a key. Clearing a missing key succeeds.

        Returns:
            True if cleared successfully
        """
        try:
            removed = self._delete(session_key)
        except StorageError as e:
            CHECKPOINT_OPERATIONS.labels(operation="clear", status="failed").inc()
            logger.error("checkpoint_clear_error", session_key=session_key, error=str(e))
            return False

        CHECKPOINT_OPERATIONS.labels(operation="clear", status="success").inc()
        if removed:
            logger.info("checkpoint_cleared", session_key=session_key)
        return True

    @abstractmethod
    def list_keys(self) -> List[str]:
        """Session keys that currently have a checkpoint"""

    @abstractmethod
    def _write(self, session_key: str, checkpoint: Checkpoint) -> None:
        """Store a checkpoint; raise StorageError on failure"""

    @abstractmethod
    def _read(self, session_key: str) -> Optional[Checkpoint]:
        """Return the stored checkpoint or None; raise StorageError on failure"""

    @abstractmethod
    def _delete(self, session_key: str) -> bool:
        """Delete a checkpoint; return whether one existed"""


class FileCheckpointStore(CheckpointStore):
    """
    JSON-file checkpoint store, one file per session key.

    Uses atomic writes (temp file + rename) to prevent corruption.
    """

    def __init__(self, config: Optional[CheckpointConfig] = None):
        """
        Initialize checkpoint store.

        Args:
            config: Checkpoint configuration
        """
        self.config = config or CheckpointConfig()
        self.checkpoint_dir = Path(self.config.checkpoint_dir)

        if not self.config.enabled:
            logger.info("checkpoint_store_disabled")
            return

        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            "checkpoint_store_initialized",
            checkpoint_dir=str(self.checkpoint_dir),
            interval=self.config.checkpoint_interval,
        )

    def list_keys(self) -> List[str]:
        if not self.config.enabled or not self.checkpoint_dir.exists():
            return []
        return sorted(f.stem for f in self.checkpoint_dir.glob("*.json"))

    def _write(self, session_key: str, checkpoint: Checkpoint) -> None:
        if not self.config.enabled:
            return

        checkpoint_file = self._get_checkpoint_path(session_key)
        temp_file = checkpoint_file.with_suffix(".tmp")

        try:
            with open(temp_file, "w") as f:
                json.dump(checkpoint.to_json_dict(), f, indent=2, default=str)
            # Atomic rename
            temp_file.replace(checkpoint_file)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {checkpoint_file}: {e}") from e

    def _read(self, session_key: str) -> Optional[Checkpoint]:
        if not self.config.enabled:
            return None

        checkpoint_file = self._get_checkpoint_path(session_key)
        if not checkpoint_file.exists():
            return None

        try:
            with open(checkpoint_file, "r") as f:
                data = json.load(f)
            return Checkpoint.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            raise StorageError(f"Failed to read {checkpoint_file}: {e}") from e

    def _delete(self, session_key: str) -> bool:
        if not self.config.enabled:
            return False

        checkpoint_file = self._get_checkpoint_path(session_key)
        if not checkpoint_file.exists():
            return False

        try:
            checkpoint_file.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {checkpoint_file}: {e}") from e
        return True

    def _get_checkpoint_path(self, session_key: str) -> Path:
        """Get checkpoint file path for a session key"""
        if not _SESSION_KEY_PATTERN.match(session_key):
            raise StorageError(f"Invalid session key: {session_key!r}")
        return self.checkpoint_dir / f"{session_key}.json"


class InMemoryCheckpointStore(CheckpointStore):
    """Process-local store; holds serialized documents so reads never alias writes"""

    def __init__(self) -> None:
        self._documents: Dict[str, str] = {}
        self.save_count = 0

    def list_keys(self) -> List[str]:
        return sorted(self._documents)

    def _write(self, session_key: str, checkpoint: Checkpoint) -> None:
        self._documents[session_key] = json.dumps(checkpoint.to_json_dict(), default=str)
        self.save_count += 1

    def _read(self, session_key: str) -> Optional[Checkpoint]:
        document = self._documents.get(session_key)
        if document is None:
            return None
        try:
            return Checkpoint.model_validate(json.loads(document))
        except (ValueError, ValidationError) as e:
            raise StorageError(str(e)) from e

    def _delete(self, session_key: str) -> bool:
        return self._documents.pop(session_key, None) is not None


def create_checkpoint_store(config: CheckpointConfig) -> CheckpointStore:
    """Store used by the CLI: file-backed when enabled, in-memory otherwise"""
    if config.enabled:
        return FileCheckpointStore(config)
    return InMemoryCheckpointStore()
