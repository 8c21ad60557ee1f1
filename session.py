"""Per-repository diff session state."""

from pathlib import Path
from typing import Callable

from config import get_base_branch, save_config, set_base_branch
from error_handler import handle_configuration_error
from logging_config import get_logger

logger = get_logger(__name__)


class DiffSession:
    """Owns the base reference of one repository.

    The reference is restored from the configuration on creation and replaced
    as a whole when the user picks another one.
    """

    def __init__(self, repo_root: Path, cfg: dict, persist: Callable[[dict], None] = save_config):
        self.repo_root = repo_root
        self.cfg = cfg
        self._persist = persist
        self._base_ref = get_base_branch(cfg, repo_root)
        self._listeners: list[Callable[[str], None]] = []

    @property
    def base_ref(self) -> str:
        return self._base_ref

    def on_base_changed(self, listener: Callable[[str], None]):
        """Register a callable invoked with the new reference after a change."""
        self._listeners.append(listener)

    def set_base_ref(self, name: str) -> bool:
        """Replace the base reference. Returns False if nothing changed."""
        name = name.strip()
        if not name:
            raise ValueError("Base reference must not be empty")
        if name == self._base_ref:
            return False

        self._base_ref = name
        set_base_branch(self.cfg, self.repo_root, name)
        try:
            self._persist(self.cfg)
        except OSError as e:
            handle_configuration_error(e, "base_branches")
        logger.info(f"Base reference for {self.repo_root} set to {name}")

        for listener in list(self._listeners):
            listener(name)
        return True
