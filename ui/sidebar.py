"""Sidebar showing changed files and the base branch picker."""

from pathlib import Path

from PySide6.QtCore import Qt, QFileSystemWatcher, QUrl
from PySide6.QtGui import QColor, QDesktopServices, QFont
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QDialog, QLineEdit, QListWidget, QListWidgetItem,
    QDialogButtonBox, QTreeWidget, QTreeWidgetItem
)

from branches import STACK_MARKER, branch_from_display
from config import get_debounce_ms
from debounce import Debouncer, start_task
from error_handler import ErrorCategory, ErrorSeverity, NoWorkspaceError, handle_error
from logging_config import get_logger
from models import ChangeKind, FileItem, GroupItem, MessageItem
from provider import GitDiffProvider

logger = get_logger(__name__)

FILE_ROLE = Qt.ItemDataRole.UserRole
ERROR_COLOR = "#ff6b6b"
INFO_COLOR = "#9aa0b4"

SIDEBAR_STYLE = """
    QWidget {
        background-color: #0f1115;
        color: #e6e7ee;
    }
    QLabel {
        background-color: transparent;
    }
    QTreeWidget, QListWidget, QLineEdit {
        background-color: #151823;
        color: #e6e7ee;
        border: 1px solid #404757;
        border-radius: 4px;
    }
    QTreeWidget::item:selected, QListWidget::item:selected {
        background-color: #26304a;
    }
    QLineEdit:focus {
        border: 2px solid #7c7fff;
    }
    QPushButton {
        background-color: #1a1f2e;
        color: #e6e7ee;
        border: 1px solid #404757;
        border-radius: 3px;
        padding: 4px 8px;
    }
    QPushButton:hover {
        background-color: #7c7fff;
        color: #ffffff;
    }
"""


class DiffSidebar(QWidget):
    """Tree of All, Committed and Uncommitted changes for one repository."""

    def __init__(self, parent, cfg: dict, on_status=None):
        super().__init__(parent)
        self.cfg = cfg
        self.on_status = on_status or (lambda text: None)
        self.provider: GitDiffProvider | None = None
        self.watcher = QFileSystemWatcher(self)
        self.watcher.directoryChanged.connect(self._on_fs_change)
        self.watcher.fileChanged.connect(self._on_fs_change)
        self._refresh = Debouncer(get_debounce_ms(cfg), self.reload)
        self._tasks = set()

        self._setup_ui()
        self.setStyleSheet(SIDEBAR_STYLE)

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(5, 10, 5, 10)
        layout.setSpacing(8)

        self.header = QLabel("Changes")
        self.header.setFont(QFont("Arial", 14, QFont.Weight.Bold))
        self.header.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.header)

        base_row = QHBoxLayout()
        base_row.setContentsMargins(0, 0, 0, 0)
        self.base_label = QLabel("Base: -")
        self.base_label.setFont(QFont("Arial", 10))
        base_row.addWidget(self.base_label)

        self.stack_label = QLabel("")
        self.stack_label.setStyleSheet("color: #7c7fff;")
        base_row.addWidget(self.stack_label)
        base_row.addStretch()

        self.change_base_btn = QPushButton("Change…")
        self.change_base_btn.setToolTip("Select the base branch to compare against")
        self.change_base_btn.clicked.connect(self._on_change_base)
        self.change_base_btn.setEnabled(False)
        base_row.addWidget(self.change_base_btn)
        layout.addLayout(base_row)

        self.tree = QTreeWidget()
        self.tree.setColumnCount(2)
        self.tree.setHeaderHidden(True)
        self.tree.itemDoubleClicked.connect(self._on_item_activated)
        layout.addWidget(self.tree, 1)

    def set_provider(self, provider: GitDiffProvider):
        """Show the changes of another workspace."""
        self._refresh.cancel()
        self.provider = provider
        self._unwatch_all()
        self.schedule_reload(immediate=True)

    def schedule_reload(self, immediate: bool = False):
        """Reload the tree, coalescing bursts of requests."""
        if immediate:
            self._refresh.cancel()
            start_task(self.reload(), self._tasks)
        else:
            self._refresh.trigger()

    async def reload(self):
        provider = self.provider
        if provider is None:
            return
        try:
            root_items = await provider.get_root_items()
            if len(root_items) == 1 and isinstance(root_items[0], MessageItem):
                self._show_message(root_items[0])
                return

            if await provider.refresh() is None or provider is not self.provider:
                return
            groups = []
            for group in root_items:
                groups.append((group, await provider.get_file_items(group.kind)))
            branch = await provider.current_branch()
            watch_paths = await provider.watch_paths()
            if provider is not self.provider:
                return
            self._watch_paths(watch_paths)
            self._populate(groups, provider.base_reference, branch)
            self.stack_label.setText("[stack]" if await provider.is_stacked() else "")
        except Exception as e:
            handle_error(e, ErrorCategory.UI_OPERATION, context={"operation": "reload sidebar"})

    def _show_message(self, item: MessageItem):
        self.tree.clear()
        self.header.setText("Changes")
        self.base_label.setText("Base: -")
        self.change_base_btn.setEnabled(False)
        message = QTreeWidgetItem(self.tree, [item.text])
        message.setForeground(0, QColor(ERROR_COLOR if item.is_error else INFO_COLOR))
        self.on_status(item.text)

    def _populate(self, groups: list[tuple[GroupItem, list[FileItem]]], base_ref: str | None,
                  branch: str | None = None):
        self.tree.clear()
        self.header.setText(f"Changes on {branch}" if branch else "Changes")
        self.base_label.setText(f"Base: {base_ref}")
        self.change_base_btn.setEnabled(True)

        total = 0
        for group, files in groups:
            group_item = QTreeWidgetItem(self.tree, [f"{group.label} ({len(files)})", group.description])
            group_item.setFont(0, QFont("Arial", 10, QFont.Weight.Bold))
            for file_item in files:
                child = QTreeWidgetItem(group_item, [file_item.name, file_item.directory])
                child.setData(0, FILE_ROLE, file_item)
                child.setToolTip(0, f"{file_item.path}\nCompared with {file_item.diff_ref}")
            group_item.setExpanded(group.expanded)
            if group.kind is ChangeKind.ALL:
                total = len(files)
        self.tree.resizeColumnToContents(0)
        self.on_status(f"{total} changed file(s) against {base_ref}")

    def _watch_paths(self, wanted: list[Path]):
        """Watch exactly the given paths, replacing what was watched before."""
        wanted = [str(p) for p in wanted]
        watched = self.watcher.directories() + self.watcher.files()
        stale = [p for p in watched if p not in wanted]
        if stale:
            self.watcher.removePaths(stale)
        # removed files drop out of the watcher and are added back here
        missing = [p for p in wanted if p not in watched]
        if missing:
            self.watcher.addPaths(missing)

    def _unwatch_all(self):
        watched = self.watcher.directories() + self.watcher.files()
        if watched:
            self.watcher.removePaths(watched)

    def _on_fs_change(self, _path: str):
        self.schedule_reload()

    def _on_item_activated(self, item: QTreeWidgetItem, _column: int):
        file_item = item.data(0, FILE_ROLE)
        if not isinstance(file_item, FileItem) or not self.provider or not self.provider.repo_root:
            return
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(self.provider.repo_root / file_item.path)))

    def _on_change_base(self):
        if not self.provider or not self.provider.session:
            return
        dialog = BaseBranchDialog(self, self.provider, get_debounce_ms(self.cfg))
        dialog.accepted.connect(lambda: self._apply_base(dialog.selected_branch))
        dialog.open()

    def _apply_base(self, branch: str | None):
        if not branch or not self.provider:
            return
        try:
            changed = self.provider.set_base_reference(branch)
        except (ValueError, NoWorkspaceError) as e:
            handle_error(e, ErrorCategory.UI_OPERATION, ErrorSeverity.WARNING,
                         context={"operation": "change base branch", "branch": branch})
            self.on_status(f"Could not change base branch: {e}")
            return
        if changed:
            self.on_status(f"Base branch changed to: {branch}")
            self.schedule_reload(immediate=True)


class BaseBranchDialog(QDialog):
    """Pick a base branch, with stack ancestors listed first."""

    def __init__(self, parent, provider: GitDiffProvider, debounce_ms: int):
        super().__init__(parent)
        self.provider = provider
        self.selected_branch: str | None = None
        self._filter = Debouncer(debounce_ms, self._load_branches)
        self._tasks = set()

        self._setup_ui()
        self.setStyleSheet(SIDEBAR_STYLE)
        start_task(self._load_branches(""), self._tasks)

    def _setup_ui(self):
        self.setWindowTitle("Select Base Branch")
        self.setModal(True)
        self.resize(420, 520)

        layout = QVBoxLayout(self)

        current = QLabel(f"Current base: {self.provider.base_reference}")
        current.setStyleSheet("color: #7c7fff;")
        layout.addWidget(current)

        hint = QLabel(f"{STACK_MARKER.strip()} marks branches below the current one in its stack")
        hint.setFont(QFont("Arial", 9))
        layout.addWidget(hint)

        self.search_entry = QLineEdit()
        self.search_entry.setPlaceholderText("Filter branches or type any reference")
        self.search_entry.textChanged.connect(self._filter.trigger)
        self.search_entry.returnPressed.connect(self._accept_selection)
        layout.addWidget(self.search_entry)

        self.listbox = QListWidget()
        self.listbox.itemDoubleClicked.connect(self._accept_selection)
        layout.addWidget(self.listbox)

        button_box = QDialogButtonBox()
        cancel_btn = button_box.addButton("Cancel", QDialogButtonBox.ButtonRole.RejectRole)
        select_btn = button_box.addButton("Select", QDialogButtonBox.ButtonRole.AcceptRole)
        select_btn.setDefault(True)
        cancel_btn.clicked.connect(self.reject)
        select_btn.clicked.connect(self._accept_selection)
        layout.addWidget(button_box)

        self.search_entry.setFocus()

    async def _load_branches(self, query: str):
        candidates = await self.provider.search_branches(query)
        if candidates is None:
            return
        self.listbox.clear()
        for name in candidates:
            self.listbox.addItem(QListWidgetItem(name))
        if self.listbox.count():
            self.listbox.setCurrentRow(0)

    def _accept_selection(self, *_args):
        item = self.listbox.currentItem()
        if item is not None:
            self.selected_branch = branch_from_display(item.text())
        else:
            self.selected_branch = self.search_entry.text().strip() or None
        if self.selected_branch:
            self._filter.cancel()
            self.accept()

    def reject(self):
        self._filter.cancel()
        super().reject()
