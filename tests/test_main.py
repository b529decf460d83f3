"""
Tests for main — validates candle file loading and the scan driver.
"""

import argparse
import json

import pytest

from core.candles import CandleError
from main import build_parser, load_candles, run


def _args(path, iv=30.0, limit=100, output=""):
    return argparse.Namespace(candles=str(path), iv=iv, limit=limit, output=output)


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "candles.csv"
    path.write_text(
        "timestamp,open,high,low,close\n"
        "1727740800000,100,100,100,100\n"
        "1727740860000,100,102,99,101\n"
        "1727740920000,101,,97,98\n"
    )
    return path


class TestLoadCandles:
    def test_csv(self, csv_file):
        candles = load_candles(csv_file)
        assert len(candles) == 3
        assert candles[2].high is None
        assert candles[2].low == 97

    def test_json_records(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps([
            {"timestamp": 0, "open": 1, "high": 2, "low": 0.5, "close": 1.5},
        ]))
        candles = load_candles(path)
        assert candles[0].close == 1.5

    def test_json_columns(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps({"t": [0, 1], "o": [1, 1], "h": [2, 2], "l": [0, 0], "c": [1, 1]}))
        assert len(load_candles(path)) == 2

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "candles.txt"
        path.write_text("")
        with pytest.raises(CandleError):
            load_candles(path)


class TestRun:
    def test_success_writes_summary(self, csv_file, tmp_path):
        out = tmp_path / "out" / "summary.json"
        assert run(_args(csv_file, output=str(out))) == 0
        summary = json.loads(out.read_text())
        assert summary["opening_price"] == 100
        assert summary["hit_counts"]["FM"] == 2
        assert summary["events"][0]["direction"] == "up"
        assert summary["events"][-1]["direction"] == "down"

    def test_header_only_csv_fails(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("timestamp,open,high,low,close\n")
        assert run(_args(path)) == 1

    def test_missing_file_fails(self, tmp_path):
        assert run(_args(tmp_path / "nope.csv")) == 1

    def test_malformed_json_fails(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[{\"timestamp\": \"yesterday\", \"close\": 1}]")
        assert run(_args(path)) == 1

    def test_no_opening_close_fails(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps([{"timestamp": 0, "high": 1, "low": 1}]))
        assert run(_args(path)) == 1

    def test_invalid_utf8_json_fails(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_bytes(b"\xff\xfe[\x00")
        assert run(_args(path)) == 1

    def test_scalar_columns_json_fails(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps({"t": 5, "o": 1, "h": 1, "l": 1, "c": 1}))
        assert run(_args(path)) == 1

    def test_string_volatility_fails(self, csv_file):
        assert run(_args(csv_file, iv="30")) == 1

    def test_microsecond_timestamps_still_written(self, tmp_path):
        path = tmp_path / "candles.json"
        path.write_text(json.dumps([
            {"timestamp": 1_727_740_800_000_000, "high": 100, "low": 100, "close": 100},
            {"timestamp": 1_727_740_800_060_000, "high": 102, "low": 99, "close": 101},
        ]))
        out = tmp_path / "summary.json"
        assert run(_args(path, output=str(out))) == 0
        events = json.loads(out.read_text())["events"]
        assert len(events) == 3
        assert events[0]["timestamp_iso"] is None


class TestParser:
    def test_defaults(self):
        import config as cfg
        args = build_parser().parse_args(["candles.csv"])
        assert args.iv == cfg.DEFAULT_VOLATILITY_PERCENT
        assert args.limit == cfg.EVENT_LOG_LIMIT
        assert args.output == ""

    def test_iv_override(self):
        args = build_parser().parse_args(["candles.csv", "--iv", "45.5"])
        assert args.iv == 45.5

    def test_verbose_flag(self):
        assert build_parser().parse_args(["c.csv", "-v"]).verbose is True
        assert build_parser().parse_args(["c.csv"]).verbose is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
