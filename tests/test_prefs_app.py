import pathlib
import sys

repo_root = pathlib.Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

import prefs_app


def test_parser_defaults():
    args = prefs_app.build_parser().parse_args([])
    assert args.settings is None
    assert args.verbose is False


def test_parser_accepts_settings_path_and_verbose():
    args = prefs_app.build_parser().parse_args(["--settings", "my settings.json", "-v"])
    assert args.settings == "my settings.json"
    assert args.verbose is True


def test_main_reports_missing_pyside(monkeypatch, capsys):
    monkeypatch.setitem(sys.modules, "PySide6", None)
    monkeypatch.setitem(sys.modules, "PySide6.QtWidgets", None)

    assert prefs_app.main([]) == 1
    assert "PySide6 is required" in capsys.readouterr().out
