"""Tests for the command-line shell."""

import json

import pytest

import main
from src.settings import get_settings


@pytest.fixture
def snapshot_file(tmp_path, api_records):
    path = tmp_path / "stocks.json"
    path.write_text(json.dumps({"stocks": api_records}))
    return path


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("EQUILIBRIO_STORAGE_BACKEND", "file")
    monkeypatch.setenv("EQUILIBRIO_STORAGE_DIR", str(tmp_path / "state"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestCli:
    """Tests for running the screener from the command line."""

    def test_prints_table(self, snapshot_file, capsys):
        assert main.main(["--file", str(snapshot_file)]) == 0
        out = capsys.readouterr().out
        assert "AAPL" in out and "XOM" in out
        assert "Page 1 of 1 (2 matches of 2 instruments)" in out

    def test_filters_and_sort(self, snapshot_file, capsys):
        assert main.main(["--file", str(snapshot_file), "--zone", "discount", "--sort", "rsi", "--desc"]) == 0
        out = capsys.readouterr().out
        assert "AAPL" in out
        assert "XOM" not in out
        assert "(1 matches of 2 instruments)" in out

    def test_filters_persist_until_reset(self, snapshot_file, capsys):
        main.main(["--file", str(snapshot_file), "--signal", "hold"])
        capsys.readouterr()
        main.main(["--file", str(snapshot_file)])
        assert "(1 matches of 2 instruments)" in capsys.readouterr().out
        main.main(["--file", str(snapshot_file), "--reset"])
        assert "(2 matches of 2 instruments)" in capsys.readouterr().out

    def test_presets(self, snapshot_file, capsys):
        main.main(["--file", str(snapshot_file), "--rsi-max", "30", "--save-preset", "Oversold"])
        out = capsys.readouterr().out
        preset_id = out.split("Saved preset ")[1].split(" ")[0]

        main.main(["--file", str(snapshot_file), "--list-presets"])
        assert "Oversold" in capsys.readouterr().out

        main.main(["--file", str(snapshot_file), "--reset", "--preset", preset_id])
        assert "(1 matches of 2 instruments)" in capsys.readouterr().out

    def test_range_flags_can_cross_saved_range(self, snapshot_file, capsys):
        main.main(["--file", str(snapshot_file), "--price-max", "50", "--rsi-max", "30"])
        capsys.readouterr()
        code = main.main([
            "--file", str(snapshot_file),
            "--price-min", "80", "--price-max", "200",
            "--rsi-min", "40", "--rsi-max", "50",
        ])
        captured = capsys.readouterr()
        assert code == 0, captured.err
        assert "XOM" in captured.out
        assert "(1 matches of 2 instruments)" in captured.out

    def test_table_shows_volume_and_market_cap(self, snapshot_file, capsys):
        main.main(["--file", str(snapshot_file)])
        out = capsys.readouterr().out
        assert "Mkt Cap" in out
        assert "52.00M" in out
        assert "$2800.00B" in out

    def test_unknown_preset(self, snapshot_file, capsys):
        assert main.main(["--file", str(snapshot_file), "--preset", "preset_missing"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_degenerate_range(self, snapshot_file, capsys):
        assert main.main(["--file", str(snapshot_file), "--rsi-min", "60", "--rsi-max", "40"]) == 1
        assert "exceeds" in capsys.readouterr().err

    def test_export_to_directory(self, snapshot_file, tmp_path, capsys):
        out_dir = tmp_path / "exports"
        out_dir.mkdir()
        assert main.main(["--file", str(snapshot_file), "--export", str(out_dir)]) == 0
        files = list(out_dir.iterdir())
        assert len(files) == 1
        assert files[0].name.startswith("stock_scan_")
        assert files[0].read_text().startswith("Symbol,Name,Price")

    def test_missing_file(self, tmp_path, capsys):
        assert main.main(["--file", str(tmp_path / "nope.json")]) == 1
