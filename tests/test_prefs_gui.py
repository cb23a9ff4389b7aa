import json
import os
import pathlib
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
pytest.importorskip("PySide6.QtWidgets")

repo_root = pathlib.Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from PySide6.QtWidgets import QApplication

import app_configs as ac
import prefs_gui
from settings_store import SettingsStore


@pytest.fixture(scope="module")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def store(tmp_path):
    store = SettingsStore(str(tmp_path / "settings.json"))
    store.set_strv(ac.KNOWN_CLASSES_KEY, ["kitty", "org.gnome.Console"])
    return store


@pytest.fixture
def editor(qapp, store):
    editor = prefs_gui.ConfigEditor(store)
    editor.open_session()
    yield editor
    editor.close_session()
    editor.deleteLater()


def test_suggestions_are_loaded_and_entry_starts_empty(editor):
    combo = editor.wm_class_input
    assert [combo.itemText(i) for i in range(combo.count())] == ["kitty", "org.gnome.Console"]
    assert combo.currentText() == ""


def test_add_trims_text_and_resets_inputs(editor, store):
    editor.wm_class_input.setEditText("  fire.*  ")
    editor.regex_check.setChecked(True)

    editor.add_button.click()

    assert ac.load_configs(store) == [ac.WindowAppConfig("fire.*", is_regex=True)]
    assert editor.wm_class_input.currentText() == ""
    assert editor.regex_check.isChecked() is False
    assert [row.title() for row in editor.rows()] == ["fire.* (Regex)"]


def test_add_with_blank_text_is_ignored(editor, store):
    editor.wm_class_input.setEditText("   ")
    editor.regex_check.setChecked(True)

    editor.add_button.click()

    assert ac.load_configs(store) == []
    assert editor.regex_check.isChecked() is True


def test_switches_reflect_stored_flags(qapp, store):
    ac.save_configs(store, [ac.WindowAppConfig("kitty", restore_pos=True)])

    with prefs_gui.ConfigEditor(store) as editor:
        (row,) = editor.rows()
        assert row.switches["restore_size"].isChecked() is False
        assert row.switches["restore_pos"].isChecked() is True
        assert row.switches["restore_maximized"].isChecked() is False


def test_toggle_writes_field_without_rebuilding_rows(editor, store):
    ac.add_config(store, "kitty")
    ac.add_config(store, "foot")
    rows_before = editor.rows()

    rows_before[0].switches["restore_maximized"].setChecked(True)

    assert editor.rows() == rows_before
    kitty, foot = ac.load_configs(store)
    assert kitty.restore_maximized is True
    assert foot == ac.WindowAppConfig("foot")


def test_delete_button_removes_entry_and_row(editor, store):
    ac.add_config(store, "kitty")
    ac.add_config(store, "foot")

    editor.rows()[0].delete_button.click()

    assert [c.wm_class for c in ac.load_configs(store)] == ["foot"]
    assert [row.wm_class for row in editor.rows()] == ["foot"]


def test_external_write_rebuilds_and_keeps_expansion_by_wm_class(editor, store):
    ac.add_config(store, "kitty")
    ac.add_config(store, "foot")
    editor.rows()[1].set_expanded(True)

    # Same wm_class, new title: expansion follows the identifier.
    store.set_string(ac.CONFIGS_KEY, json.dumps([
        {"wm_class": "foot", "is_regex": True},
        {"wm_class": "kitty"},
    ]))

    rows = editor.rows()
    assert [row.title() for row in rows] == ["foot (Regex)", "kitty"]
    assert rows[0].is_expanded() is True
    assert rows[1].is_expanded() is False


def test_bad_persisted_json_renders_empty_list(editor, store):
    ac.add_config(store, "kitty")

    store.set_string(ac.CONFIGS_KEY, "not json")

    assert editor.rows() == []


def test_close_session_is_idempotent_and_stops_reacting(editor, store):
    ac.add_config(store, "kitty")
    assert store.handler_count(ac.CONFIGS_KEY) == 1

    editor.close_session()
    editor.close_session()

    assert store.handler_count(ac.CONFIGS_KEY) == 0
    assert editor.rows() == []
    ac.add_config(store, "foot")
    assert editor.rows() == []


def test_open_session_twice_subscribes_once(editor, store):
    editor.open_session()

    assert store.handler_count(ac.CONFIGS_KEY) == 1


def test_window_reloads_external_file_edits(qapp, store):
    ac.add_config(store, "kitty")
    win = prefs_gui.PrefsWindow(store)
    win.show()
    try:
        data = json.loads(pathlib.Path(store.path).read_text(encoding="utf-8"))
        data[ac.CONFIGS_KEY] = json.dumps([{"wm_class": "kitty"}, {"wm_class": "foot"}])
        pathlib.Path(store.path).write_text(json.dumps(data), encoding="utf-8")

        win._on_file_changed(store.path)

        assert [row.wm_class for row in win.editor.rows()] == ["kitty", "foot"]
    finally:
        win.close()

    assert store.handler_count() == 0
    assert win.editor.is_open is False


def test_reopen_after_close_does_not_duplicate_rows(editor, store):
    ac.add_config(store, "kitty")
    ac.add_config(store, "foot")

    editor.close_session()
    assert editor._list_lay.count() == 0

    editor.open_session()

    assert editor._list_lay.count() == 2
    assert [row.wm_class for row in editor.rows()] == ["kitty", "foot"]
