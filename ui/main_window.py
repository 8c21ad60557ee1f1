"""Main window and application logic."""

from pathlib import Path

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QComboBox,
    QPushButton, QCheckBox, QStatusBar, QMessageBox, QFileDialog
)

from config import load_config, save_config, push_recent_repo
from debounce import start_task
from error_handler import ErrorInfo, NotARepositoryError, ToolUnavailableError, get_error_handler, handle_configuration_error
from git_utils import ensure_repo_root, git_version_ok
from logging_config import get_logger, set_log_repository
from provider import GitDiffProvider

from .sidebar import DiffSidebar

logger = get_logger(__name__)

WINDOW_TITLE = "Git Diff Sidebar"

WINDOW_STYLE = """
    QMainWindow, QWidget {
        background-color: #0f1115;
        color: #e6e7ee;
    }
    QComboBox {
        background-color: #151823;
        color: #e6e7ee;
        border: 1px solid #404757;
        border-radius: 4px;
        padding: 6px;
    }
    QPushButton {
        background-color: #1a1f2e;
        color: #e6e7ee;
        border: 1px solid #404757;
        border-radius: 4px;
        padding: 6px 12px;
    }
    QPushButton:hover {
        background-color: #20273a;
    }
    QStatusBar {
        background-color: #1a1f2e;
        color: #9aa1b2;
        border-top: 1px solid #404757;
    }
"""


class App(QMainWindow):
    """Repository chooser around a single diff sidebar."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(420, 720)
        self.setMinimumSize(320, 400)

        self.cfg = load_config()
        self.repo_root: Path | None = None
        self._tasks = set()

        self._build_layout()
        self._build_menus()
        self.setStyleSheet(WINDOW_STYLE)

        get_error_handler().set_notification_callback(self._on_error)

    def _button(self, text: str, slot, tooltip: str = "") -> QPushButton:
        button = QPushButton(text)
        button.setToolTip(tooltip)
        button.clicked.connect(slot)
        return button

    def _action(self, menu, text: str, slot, shortcut: str | None = None) -> QAction:
        action = QAction(text, self)
        if shortcut:
            action.setShortcut(QKeySequence(shortcut))
        action.triggered.connect(slot)
        menu.addAction(action)
        return action

    def _build_layout(self):
        central = QWidget()
        self.setCentralWidget(central)
        column = QVBoxLayout(central)
        column.setContentsMargins(8, 8, 8, 8)
        column.setSpacing(6)

        self.repo_combo = QComboBox()
        self.repo_combo.setEditable(True)
        self.repo_combo.setToolTip("Enter or select a workspace folder")
        self.repo_combo.addItems(self.cfg.get("recent_repos", []))
        self.repo_combo.lineEdit().returnPressed.connect(self.open_repo_from_entry)

        chooser = QHBoxLayout()
        chooser.setSpacing(6)
        chooser.addWidget(self.repo_combo, 1)
        chooser.addWidget(self._button("Pick…", self.choose_repo, "Browse for a workspace folder"))
        chooser.addWidget(self._button("Open", self.open_repo_from_entry, "Open the folder typed above"))
        column.addLayout(chooser)

        self.auto_reopen_cb = QCheckBox("Auto-reopen last")
        self.auto_reopen_cb.setChecked(bool(self.cfg.get("auto_reopen_last", True)))
        self.auto_reopen_cb.toggled.connect(self._persist_auto_reopen)

        options = QHBoxLayout()
        options.addWidget(self._button("Refresh", self.refresh, "Refresh changed files (F5)"))
        options.addWidget(self.auto_reopen_cb)
        options.addStretch()
        column.addLayout(options)

        self.sidebar = DiffSidebar(self, self.cfg, on_status=self._set_status)
        column.addWidget(self.sidebar, 1)

        self.status_label = QLabel("Ready")
        self.status_label.setStyleSheet("padding: 4px 8px;")
        status_bar = QStatusBar()
        status_bar.addWidget(self.status_label)
        self.setStatusBar(status_bar)

    def _build_menus(self):
        file_menu = self.menuBar().addMenu("File")
        self._action(file_menu, "Open folder…", self.choose_repo, "Ctrl+O")
        self.recent_menu = file_menu.addMenu("Recent Folders")
        self._rebuild_recent_menu()
        file_menu.addSeparator()
        self._action(file_menu, "Exit", self.close)

        view_menu = self.menuBar().addMenu("View")
        self._action(view_menu, "Refresh", self.refresh, "F5")
        self._action(view_menu, "Select base branch…", lambda: self.sidebar.change_base_btn.click(), "Ctrl+B")

    def _rebuild_recent_menu(self):
        self.recent_menu.clear()
        recents = self.cfg.get("recent_repos", [])
        for path in recents:
            self._action(self.recent_menu, path, lambda _checked=False, p=path: self._open_repo_by_path(p))
        if not recents:
            self._action(self.recent_menu, "(Empty)", lambda: None).setEnabled(False)
            return
        self.recent_menu.addSeparator()
        self._action(self.recent_menu, "Clear history", self._clear_recents)

    async def startup(self):
        """Check git and reopen the last workspace. Run once the event loop is up."""
        if not await git_version_ok():
            QMessageBox.warning(self, "Git version", "Git 2.13 or newer is required to list branches.")
        self._restore_settings()

    def _restore_settings(self):
        geom = self.cfg.get("window_geometry")
        if geom and "x" in geom and "+" in geom:
            try:
                size_part, pos_part = geom.split("+", 1)
                width, height = map(int, size_part.split("x"))
                x, y = map(int, pos_part.split("+"))
                self.resize(width, height)
                self.move(x, y)
            except ValueError:
                logger.warning(f"Ignoring malformed window geometry: {geom}")

        if self.cfg.get("auto_reopen_last") and self.cfg.get("last_repo"):
            last = Path(self.cfg["last_repo"])
            if last.exists():
                self._open_repo_by_path(str(last))
                return
        self.sidebar.set_provider(GitDiffProvider(None, self.cfg))

    def choose_repo(self):
        folder = QFileDialog.getExistingDirectory(self, "Choose a workspace folder")
        if folder:
            self._open_repo_by_path(folder)

    def open_repo_from_entry(self):
        val = self.repo_combo.currentText().strip()
        if val:
            self._open_repo_by_path(val)

    def _open_repo_by_path(self, path_str: str):
        start_task(self._open_repo(Path(path_str).expanduser()), self._tasks)

    async def _open_repo(self, path: Path):
        try:
            self.repo_root = await ensure_repo_root(path)
        except (NotARepositoryError, ToolUnavailableError) as e:
            # the sidebar shows the explanation in place of the groups
            logger.info(f"Opening {path} failed: {e}")
            self.repo_root = None
            set_log_repository(None)
            self.sidebar.set_provider(GitDiffProvider(path, self.cfg))
            return

        set_log_repository(self.repo_root)
        push_recent_repo(self.cfg, self.repo_root)
        self._save_config()
        self.repo_combo.clear()
        self.repo_combo.addItems(self.cfg.get("recent_repos", []))
        self.repo_combo.setCurrentText(str(self.repo_root))
        self._rebuild_recent_menu()
        self.setWindowTitle(f"{WINDOW_TITLE} - {self.repo_root.name}")
        self.sidebar.set_provider(GitDiffProvider(self.repo_root, self.cfg))

    def refresh(self):
        self.sidebar.schedule_reload(immediate=True)

    def _persist_auto_reopen(self, checked: bool):
        self.cfg["auto_reopen_last"] = checked
        self._save_config()

    def _clear_recents(self):
        self.cfg["recent_repos"] = []
        self._save_config()
        self.repo_combo.clear()
        self._rebuild_recent_menu()

    def _save_config(self):
        try:
            save_config(self.cfg)
        except OSError as e:
            handle_configuration_error(e)

    def _on_error(self, error_info: ErrorInfo):
        self._set_status(error_info.user_message)

    def _set_status(self, text: str):
        self.status_label.setText(text)

    def closeEvent(self, event):
        geometry = self.geometry()
        self.cfg["window_geometry"] = f"{geometry.width()}x{geometry.height()}+{geometry.x()}+{geometry.y()}"
        if self.repo_root:
            self.cfg["last_repo"] = str(self.repo_root)
        self._save_config()
        get_error_handler().set_notification_callback(None)
        event.accept()
