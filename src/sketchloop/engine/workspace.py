"""Working directory discovery for agent turns."""

from __future__ import annotations

import tempfile
from pathlib import Path

from loguru import logger

from sketchloop.errors import WorkspaceSetupError

WORKSPACE_DIR_NAME = ".superdesign"
FALLBACK_DIR_NAME = "superdesign-custom"


class WorkspaceSetup:
    """Resolve and create the directory tools operate in.

    ``<workspace>/.superdesign`` when a workspace is known, otherwise a
    directory under the system temp dir. If preparing either fails, the
    process working directory is used so a turn can still run.
    """

    def __init__(self, workspace_path: Path | None = None, *, temp_root: Path | None = None) -> None:
        self._workspace_path = workspace_path
        self._temp_root = temp_root
        self._working_directory: Path | None = None
        self.used_fallback = False

    @property
    def is_initialized(self) -> bool:
        return self._working_directory is not None

    @property
    def working_directory(self) -> Path:
        if self._working_directory is None:
            raise RuntimeError("workspace is not initialized")
        return self._working_directory

    def ensure(self) -> Path:
        if self._working_directory is None:
            self._working_directory = self._setup()
        return self._working_directory

    def _setup(self) -> Path:
        try:
            if self._workspace_path is not None:
                target = self._workspace_path / WORKSPACE_DIR_NAME
                logger.info("workspace.setup path={}", target)
            else:
                temp_root = self._temp_root or Path(tempfile.gettempdir())
                target = temp_root / FALLBACK_DIR_NAME
                self.used_fallback = True
                logger.warning("workspace.setup.no_workspace fallback={}", target)
            existed = target.is_dir()
            target.mkdir(parents=True, exist_ok=True)
            if not existed:
                logger.info("workspace.setup.created path={}", target)
            return target
        except OSError as exc:
            try:
                fallback = Path.cwd()
            except OSError as cwd_exc:
                raise WorkspaceSetupError(f"no usable working directory: {exc!s}") from cwd_exc
            self.used_fallback = True
            logger.warning("workspace.setup.failed error={} fallback={}", exc, fallback)
            return fallback
