"""Preferences window for managed application windows (PySide6)."""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional

from PySide6.QtCore import QFileSystemWatcher, Qt
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QFrame,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QStyle,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

import app_configs as ac
from settings_store import SettingsStore

logger = logging.getLogger(__name__)

WINDOW_TITLE = "Deja Window Preferences"
MIN_WINDOW_SIZE = (560, 480)

SWITCH_ROWS = [
    ("Restore Size", "restore_size"),
    ("Restore Position", "restore_pos"),
    ("Restore Maximized", "restore_maximized"),
]

PREFS_STYLE = """
QGroupBox {
    font-weight: 600;
    margin-top: 14px;
    padding-top: 8px;
}
QGroupBox::title {
    subcontrol-origin: margin;
    left: 8px;
}
QFrame#expanderRow {
    border: 1px solid palette(mid);
    border-radius: 6px;
}
QToolButton#expanderHeader {
    border: none;
    font-weight: 600;
    padding: 6px;
}
QLabel#subtitle {
    color: palette(dark);
}
QPushButton#destructiveBtn {
    color: #c01c28;
}
"""


def _action_row(title: str, subtitle: str = "") -> tuple[QWidget, QHBoxLayout]:
    """A titled row; callers append suffix widgets to the returned layout."""
    row = QWidget()
    lay = QHBoxLayout(row)
    lay.setContentsMargins(8, 4, 8, 4)
    text = QVBoxLayout()
    text.setSpacing(0)
    text.addWidget(QLabel(title))
    if subtitle:
        sub = QLabel(subtitle)
        sub.setObjectName("subtitle")
        text.addWidget(sub)
    lay.addLayout(text)
    lay.addStretch(1)
    return row, lay


class ExpanderRow(QFrame):
    """Collapsible row: a clickable header with nested rows underneath."""

    def __init__(self, title: str, wm_class: str, expanded: bool = False, parent=None) -> None:
        super().__init__(parent)
        self.setObjectName("expanderRow")
        self.wm_class = wm_class
        self.switches: Dict[str, QCheckBox] = {}
        self.delete_button: Optional[QPushButton] = None

        lay = QVBoxLayout(self)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(0)

        self._header = QToolButton()
        self._header.setObjectName("expanderHeader")
        self._header.setText(title)
        self._header.setCheckable(True)
        self._header.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self._header.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self._header.toggled.connect(self._apply_expanded)
        lay.addWidget(self._header)

        self._body = QWidget()
        self._body_lay = QVBoxLayout(self._body)
        self._body_lay.setContentsMargins(16, 0, 8, 6)
        self._body_lay.setSpacing(2)
        lay.addWidget(self._body)

        self._header.setChecked(expanded)
        self._apply_expanded(expanded)

    def _apply_expanded(self, expanded: bool) -> None:
        self._header.setArrowType(Qt.ArrowType.DownArrow if expanded else Qt.ArrowType.RightArrow)
        self._body.setVisible(expanded)

    def title(self) -> str:
        return self._header.text()

    def is_expanded(self) -> bool:
        return self._header.isChecked()

    def set_expanded(self, expanded: bool) -> None:
        self._header.setChecked(expanded)

    def add_row(self, widget: QWidget) -> None:
        self._body_lay.addWidget(widget)


class ConfigEditor(QWidget):
    """
    Editor session over the window-app-configs key.

    open_session() renders the list and subscribes to changes of the key;
    close_session() drops the subscription and the row bookkeeping.  Any
    change notification rebuilds every row except the ones caused by our
    own switch toggles, which set _writing around the write.
    """

    def __init__(self, store: SettingsStore, parent=None) -> None:
        super().__init__(parent)
        self.store = store
        self._rows: List[ExpanderRow] = []
        self._handler_id: Optional[int] = None
        self._writing = False

        lay = QVBoxLayout(self)
        lay.setContentsMargins(20, 18, 20, 16)
        lay.setSpacing(12)

        # ── Add new application ──
        add_group = QGroupBox("Application Configuration")
        add_lay = QVBoxLayout(add_group)
        hint = QLabel("Add window classes (WM_CLASS) to manage.")
        hint.setObjectName("subtitle")
        add_lay.addWidget(hint)

        add_row, add_row_lay = _action_row("Add New Application", "Enter WM_CLASS (e.g. com.mitchellh.ghostty)")
        self.wm_class_input = QComboBox()
        self.wm_class_input.setEditable(True)
        self.wm_class_input.setInsertPolicy(QComboBox.InsertPolicy.NoInsert)
        self.wm_class_input.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Fixed)
        self.wm_class_input.addItems(ac.known_wm_classes(store))
        self.wm_class_input.setCurrentIndex(-1)
        self.wm_class_input.setEditText("")
        self.wm_class_input.lineEdit().setPlaceholderText("WM_CLASS")
        self.wm_class_input.lineEdit().returnPressed.connect(self._on_add_clicked)
        add_row_lay.addWidget(self.wm_class_input, 1)

        self.regex_check = QCheckBox("Regex")
        add_row_lay.addWidget(self.regex_check)

        self.add_button = QPushButton("Add")
        self.add_button.setIcon(QIcon.fromTheme("list-add"))
        self.add_button.setDefault(True)
        self.add_button.clicked.connect(self._on_add_clicked)
        add_row_lay.addWidget(self.add_button)
        add_lay.addWidget(add_row)
        lay.addWidget(add_group)

        # ── Managed applications ──
        list_group = QGroupBox("Managed Applications")
        self._list_lay = QVBoxLayout(list_group)
        self._list_lay.setSpacing(6)
        lay.addWidget(list_group)
        lay.addStretch(1)

    # ─────────────────────────────────────────────────────────────────────
    # SESSION
    # ─────────────────────────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._handler_id is not None

    def open_session(self) -> None:
        if self.is_open:
            return
        self.refresh()
        self._handler_id = self.store.connect(ac.CONFIGS_KEY, self._on_configs_changed)

    def close_session(self) -> None:
        if self._handler_id is not None:
            self.store.disconnect(self._handler_id)
            self._handler_id = None
        self._clear_rows()

    def __enter__(self) -> "ConfigEditor":
        self.open_session()
        return self

    def __exit__(self, *_exc) -> None:
        self.close_session()

    def _on_configs_changed(self, _store: SettingsStore, _key: str) -> None:
        if self._writing:
            return
        self.refresh()

    # ─────────────────────────────────────────────────────────────────────
    # ROWS
    # ─────────────────────────────────────────────────────────────────────

    def rows(self) -> List[ExpanderRow]:
        return list(self._rows)

    def refresh(self) -> None:
        self.render(ac.load_configs(self.store))

    def render(self, configs: List[ac.WindowAppConfig]) -> None:
        logger.debug("Rendering %d window configs", len(configs))
        expanded = self._clear_rows()

        for config in configs:
            row = self._build_row(config, expanded.get(config.wm_class, False))
            self._list_lay.addWidget(row)
            self._rows.append(row)

    def _clear_rows(self) -> Dict[str, bool]:
        """Tear down every row; returns the expansion state keyed by wm_class."""
        expanded: Dict[str, bool] = {}
        for row in self._rows:
            expanded[row.wm_class] = expanded.get(row.wm_class, False) or row.is_expanded()
            self._list_lay.removeWidget(row)
            row.hide()
            # deleteLater: the delete button that triggered this may still be on the stack.
            row.deleteLater()
        self._rows = []
        return expanded

    def _build_row(self, config: ac.WindowAppConfig, expanded: bool) -> ExpanderRow:
        row = ExpanderRow(ac.row_title(config), config.wm_class, expanded=expanded)

        for title, field_name in SWITCH_ROWS:
            sub, sub_lay = _action_row(title)
            switch = QCheckBox()
            switch.setChecked(getattr(config, field_name))
            switch.toggled.connect(
                lambda checked, w=config.wm_class, f=field_name: self._update_field(w, f, checked)
            )
            sub_lay.addWidget(switch)
            row.add_row(sub)
            row.switches[field_name] = switch

        sub, sub_lay = _action_row("Remove Configuration")
        delete_btn = QPushButton("Remove")
        delete_btn.setObjectName("destructiveBtn")
        delete_btn.setIcon(QIcon.fromTheme("user-trash", self.style().standardIcon(QStyle.StandardPixmap.SP_TrashIcon)))
        delete_btn.clicked.connect(lambda _=False, w=config.wm_class: self._remove(w))
        sub_lay.addWidget(delete_btn)
        row.add_row(sub)
        row.delete_button = delete_btn
        return row

    # ─────────────────────────────────────────────────────────────────────
    # ACTIONS
    # ─────────────────────────────────────────────────────────────────────

    def _update_field(self, wm_class: str, field_name: str, value: bool) -> None:
        self._writing = True
        try:
            ac.update_field(self.store, wm_class, field_name, value)
        finally:
            self._writing = False

    def _remove(self, wm_class: str) -> None:
        ac.remove_config(self.store, wm_class)

    def _on_add_clicked(self) -> None:
        text = self.wm_class_input.currentText().strip()
        if not text:
            return
        ac.add_config(self.store, text, self.regex_check.isChecked())
        self.wm_class_input.setEditText("")
        self.regex_check.setChecked(False)


class PrefsWindow(QMainWindow):
    """Hosts a ConfigEditor and feeds it edits made to the settings file by others."""

    def __init__(self, store: SettingsStore) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(640, 560)
        self.setMinimumSize(*MIN_WINDOW_SIZE)
        self.setStyleSheet(PREFS_STYLE)
        self.store = store

        self.editor = ConfigEditor(store)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.editor)
        self.setCentralWidget(scroll)

        self._watcher: Optional[QFileSystemWatcher] = QFileSystemWatcher(self)
        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_dir_changed)
        self._watch_paths()

        self.editor.open_session()

    def _watch_paths(self) -> None:
        if self._watcher is None:
            return
        folder = os.path.dirname(self.store.path)
        if os.path.isdir(folder) and folder not in self._watcher.directories():
            self._watcher.addPath(folder)
        if os.path.exists(self.store.path) and self.store.path not in self._watcher.files():
            self._watcher.addPath(self.store.path)

    def _on_file_changed(self, path: str) -> None:
        logger.debug("Settings file changed: %s", path)
        # Atomic replacement swaps the inode, which drops it from the watcher.
        self._watch_paths()
        self.store.reload()

    def _on_dir_changed(self, _path: str) -> None:
        # Covers the settings file being created after the window opened.
        if os.path.exists(self.store.path):
            self._on_file_changed(self.store.path)

    def closeEvent(self, event) -> None:
        self.editor.close_session()
        if self._watcher is not None:
            paths = self._watcher.files() + self._watcher.directories()
            if paths:
                self._watcher.removePaths(paths)
            self._watcher = None
        event.accept()
