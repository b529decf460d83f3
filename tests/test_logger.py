"""
Tests for utils.logger — validates handler setup and level overrides.
"""

import logging

import pytest

import config as cfg
from utils.logger import ROOT_LOGGER, get_logger, setup_logging


@pytest.fixture
def fresh_root(monkeypatch, tmp_path):
    """Scanner root logger with no handlers and logs under tmp_path."""
    root = logging.getLogger(ROOT_LOGGER)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)
    monkeypatch.setattr(cfg, "LOG_DIR", tmp_path / "logs")
    yield root
    for h in root.handlers:
        h.close()


class TestLogger:
    def test_child_logger_name(self):
        log = get_logger("movements")
        assert log.name == f"{ROOT_LOGGER}.movements"

    def test_get_logger_has_no_side_effects(self, fresh_root, tmp_path):
        get_logger("movements")
        assert fresh_root.handlers == []
        assert not (tmp_path / "logs").exists()

    def test_handlers_attached_once(self, fresh_root, tmp_path):
        setup_logging()
        setup_logging()
        assert len(fresh_root.handlers) == 2
        assert (tmp_path / "logs" / "movements.log").exists()

    def test_level_override(self, fresh_root):
        setup_logging("DEBUG")
        assert fresh_root.level == logging.DEBUG
        setup_logging(logging.WARNING)
        assert fresh_root.level == logging.WARNING
        setup_logging("not-a-level")
        assert fresh_root.level == logging.INFO


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
