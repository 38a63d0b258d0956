"""
Permission Storage

RBACRepository owns the current RBACState snapshot.

Readers get a deep copy of the committed snapshot, so nothing they change
reaches the repository. Writers go through transaction(), which hands out
a draft copy; the draft replaces the committed snapshot only if the block
finishes without an exception (and, with autosave, only after it has
been written), so a reader never observes a half-applied mutation.
"""

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import pydantic

from rbac_admin.errors import StorageError
from rbac_admin.schemas.permission_models import RBACState

logger = logging.getLogger(__name__)


class RBACRepository:
    """Copy-on-write owner of the RBAC snapshot with optional JSON persistence"""

    def __init__(
        self,
        initial_state: Optional[RBACState] = None,
        state_path: Optional[Path] = None,
        autosave: bool = False
    ):
        """
        Args:
            initial_state: Starting snapshot (copied). Empty if None.
            state_path: Default file for load()/save()
            autosave: Save after every committed transaction
        """
        self._state = (initial_state or RBACState()).model_copy(deep=True)
        self._lock = threading.RLock()
        self.state_path = state_path
        self.autosave = autosave

    def snapshot(self) -> RBACState:
        """Copy of the current committed snapshot"""
        with self._lock:
            return self._state.model_copy(deep=True)

    @contextmanager
    def transaction(self) -> Iterator[RBACState]:
        """
        Yield a draft copy of the snapshot; commit it when the block exits cleanly.

        Usage:
            with repo.transaction() as draft:
                draft.roles.append(role)
        """
        with self._lock:
            draft = self._state.model_copy(deep=True)
            yield draft
            if self.autosave and self.state_path is not None:
                self._write(draft, self._resolve_path(None))
            self._state = draft

    def replace(self, state: RBACState) -> None:
        """Swap in a new snapshot wholesale"""
        with self._lock:
            self._state = state.model_copy(deep=True)

    # ===== Persistence =====

    def _resolve_path(self, path: Optional[Path]) -> Path:
        resolved = path or self.state_path
        if resolved is None:
            raise StorageError("No state file configured")
        return Path(resolved)

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Write the snapshot as camelCase JSON.

        The file is written next to its target and renamed into place.

        Returns:
            Path written
        """
        target = self._resolve_path(path)
        with self._lock:
            self._write(self._state, target)
        return target

    def _write(self, state: RBACState, target: Path) -> None:
        payload = state.model_dump(mode="json", by_alias=True)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = target.with_suffix(target.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            tmp_path.replace(target)
        except OSError as e:
            raise StorageError(f"Failed to save RBAC state: {e}", details={"path": str(target)}) from e

        logger.info(f"Saved RBAC state to {target}")

    def load(self, path: Optional[Path] = None) -> RBACState:
        """
        Replace the snapshot with the contents of a state file.

        Raises:
            StorageError: File missing, unreadable, or not a valid snapshot
        """
        source = self._resolve_path(path)

        try:
            with open(source, "r", encoding="utf-8") as f:
                data = json.load(f)
            state = RBACState.model_validate(data)
        except (OSError, json.JSONDecodeError, pydantic.ValidationError) as e:
            raise StorageError(f"Failed to load RBAC state: {e}", details={"path": str(source)}) from e

        with self._lock:
            self._state = state
        logger.info(f"Loaded RBAC state from {source}")
        return state.model_copy(deep=True)

    def clear(self, path: Optional[Path] = None) -> None:
        """Reset to an empty snapshot and remove the state file if present"""
        target = path or self.state_path
        with self._lock:
            self._state = RBACState()
            if target is not None:
                try:
                    Path(target).unlink(missing_ok=True)
                except OSError as e:
                    raise StorageError(f"Failed to clear RBAC state: {e}", details={"path": str(target)}) from e
        logger.info("Cleared RBAC state")
