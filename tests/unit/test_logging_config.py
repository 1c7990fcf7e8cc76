"""
Unit tests for ebikecrm/logging_config.py.

Tests configure_logging (idempotency, dir creation, level, handler type),
log_call (entry/exit/failure logging, re-raise) and the digit masking that
keeps phone numbers and CPFs out of the log file.
"""

import logging
import logging.handlers
import os
from unittest.mock import MagicMock, patch

import pytest

from ebikecrm.logging_config import configure_logging, log_call, mask_digits


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clear_ebikecrm_logger():
    """Close and remove all handlers from the ebikecrm logger."""
    logger = logging.getLogger("ebikecrm")
    for h in logger.handlers[:]:
        h.close()
        logger.removeHandler(h)
    logger.setLevel(logging.NOTSET)


def _log_paths(directory):
    return (
        patch("ebikecrm.logging_config._LOG_DIR", directory),
        patch("ebikecrm.logging_config._LOG_FILE", directory / "ebikecrm.log"),
    )


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------

class TestConfigureLogging:

    def setup_method(self):
        _clear_ebikecrm_logger()

    def teardown_method(self):
        _clear_ebikecrm_logger()

    def test_returns_logger(self, tmp_path):
        dir_patch, file_patch = _log_paths(tmp_path)
        with dir_patch, file_patch:
            result = configure_logging()
        assert isinstance(result, logging.Logger)
        assert result.name == "ebikecrm"

    def test_creates_log_dir_if_missing(self, tmp_path):
        log_dir = tmp_path / "logs"
        dir_patch, file_patch = _log_paths(log_dir)
        with dir_patch, file_patch:
            configure_logging()
        assert log_dir.exists()

    def test_adds_rotating_file_handler(self, tmp_path):
        dir_patch, file_patch = _log_paths(tmp_path)
        with dir_patch, file_patch:
            configure_logging()
        logger = logging.getLogger("ebikecrm")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.handlers.RotatingFileHandler)

    def test_idempotent_does_not_add_duplicate_handlers(self, tmp_path):
        dir_patch, file_patch = _log_paths(tmp_path)
        with dir_patch, file_patch:
            configure_logging()
            configure_logging()
        assert len(logging.getLogger("ebikecrm").handlers) == 1

    def test_default_level_is_info(self, tmp_path):
        env = {k: v for k, v in os.environ.items() if k != "LOG_LEVEL"}
        dir_patch, file_patch = _log_paths(tmp_path)
        with patch.dict(os.environ, env, clear=True), dir_patch, file_patch:
            configure_logging()
        assert logging.getLogger("ebikecrm").level == logging.INFO

    def test_respects_log_level_debug(self, tmp_path):
        dir_patch, file_patch = _log_paths(tmp_path)
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}), dir_patch, file_patch:
            configure_logging()
        assert logging.getLogger("ebikecrm").level == logging.DEBUG

    def test_file_lines_are_masked(self, tmp_path):
        dir_patch, file_patch = _log_paths(tmp_path)
        with dir_patch, file_patch:
            logger = configure_logging()
            logger.warning("lookup failed for cpf 52998224725")
            logger.handlers[0].flush()
        text = (tmp_path / "ebikecrm.log").read_text(encoding="utf-8")
        assert "52998224725" not in text
        assert "*******4725" in text

    def test_invalid_log_level_falls_back_to_info(self, tmp_path):
        dir_patch, file_patch = _log_paths(tmp_path)
        with patch.dict(os.environ, {"LOG_LEVEL": "BOGUS"}), dir_patch, file_patch:
            configure_logging()
        assert logging.getLogger("ebikecrm").level == logging.INFO


# ---------------------------------------------------------------------------
# mask_digits
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text, expected", [
    ("11987654321", "*******4321"),
    ("cpf='52998224725'", "cpf='*******4725'"),
    ("bike 3, id 1234567", "bike 3, id 1234567"),
    ("(11) 98765-4321", "(11) 98765-4321"),
    ("", ""),
])
def test_mask_digits(text, expected):
    assert mask_digits(text) == expected


# ---------------------------------------------------------------------------
# log_call decorator
# ---------------------------------------------------------------------------

class TestLogCall:

    def _run(self, func, *args, **kwargs):
        mock_logger = MagicMock()
        with patch("ebikecrm.logging_config.logging") as mock_logging:
            mock_logging.getLogger.return_value = mock_logger
            func(*args, **kwargs)
        return mock_logger

    def test_passes_return_value_through(self):
        @log_call
        def add(a, b):
            return a + b

        assert add(2, 3) == 5

    def test_preserves_function_name(self):
        @log_call
        def sales_add():
            pass

        assert sales_add.__name__ == "sales_add"

    def test_logs_call_with_args(self):
        @log_call
        def bikes_show(bike_id, verbose=False):
            pass

        mock_logger = self._run(bikes_show, 3, verbose=True)
        msg = mock_logger.debug.call_args[0][0]
        assert "CALL bikes_show" in msg
        assert "3" in msg
        assert "verbose=True" in msg

    def test_call_log_masks_long_digit_runs(self):
        @log_call
        def contacts_edit(contact_id, phone=None):
            pass

        mock_logger = self._run(contacts_edit, 1, phone="11987654321")
        msg = mock_logger.debug.call_args[0][0]
        assert "11987654321" not in msg
        assert "*******4321" in msg

    def test_logs_ok_with_timing(self):
        @log_call
        def noop():
            pass

        mock_logger = self._run(noop)
        msg = mock_logger.info.call_args[0][0]
        assert "OK" in msg
        assert "noop" in msg
        assert "ms" in msg

    def test_logs_fail_and_reraises(self):
        @log_call
        def boom():
            raise ValueError("bad input")

        mock_logger = MagicMock()
        with patch("ebikecrm.logging_config.logging") as mock_logging:
            mock_logging.getLogger.return_value = mock_logger
            with pytest.raises(ValueError, match="bad input"):
                boom()

        msg = mock_logger.error.call_args[0][0]
        assert "FAIL boom" in msg
        assert "ValueError: bad input" in msg
        mock_logger.info.assert_not_called()
