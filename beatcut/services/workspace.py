"""Per-session scratch directories."""

import logging
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One processing request and the directory it owns."""

    id: str
    workspace_dir: Path
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def path(self, name: str) -> Path:
        """Path of a file inside the workspace."""
        return self.workspace_dir / name


def remove_workspace(path: Path) -> None:
    """Delete a workspace tree; failures are logged, not raised."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"[WORKSPACE] Failed to remove {path}: {e}")


@contextmanager
def session_workspace(root: Path, session_id: str | None = None) -> Iterator[Session]:
    """Create ``root/<session id>`` for the duration of a ``with`` block.

    The directory is removed on every exit path, including exceptions
    raised mid-pipeline; the exception still propagates afterwards.
    """
    session_id = session_id or str(uuid4())
    workspace_dir = Path(root) / session_id
    workspace_dir.mkdir(parents=True, exist_ok=False)
    session = Session(id=session_id, workspace_dir=workspace_dir)
    logger.info(f"[WORKSPACE] Created {workspace_dir}")
    try:
        yield session
    finally:
        remove_workspace(workspace_dir)
        logger.info(f"[WORKSPACE] Removed {workspace_dir}")
