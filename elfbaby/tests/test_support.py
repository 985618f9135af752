"""Tests for logging, shutdown and the affiliate-link helpers."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
from playwright.sync_api import Error as PlaywrightError

from elfbaby.affiliate import extract_affiliate_link, find_firefox_profile
from elfbaby.logging_config import LOGGER_NAME, get_logger, log_scrape_event, setup_logging
from elfbaby.shutdown import get_shutdown_handler, register_cleanup, shutdown_requested


class TestLogging:
    """Tests for the JSONL audit log."""

    @pytest.fixture
    def log_dir(self, tmp_path):
        setup_logging(log_to_console=False, log_dir=tmp_path)
        yield tmp_path
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True

    def test_child_logger_name(self):
        assert get_logger("pipelines").name == "elfbaby.pipelines"
        assert get_logger().name == "elfbaby"

    def test_event_written_as_jsonl(self, log_dir):
        log_scrape_event("product_inserted", {
            "message": "Created product: Wooden Train",
            "product_id": "p1",
        }, logger_name="pipelines")

        [log_file] = list(log_dir.glob("elfbaby_*.jsonl"))
        entry = json.loads(log_file.read_text().splitlines()[-1])
        assert entry["message"] == "Created product: Wooden Train"
        assert entry["event_type"] == "product_inserted"
        assert entry["product_id"] == "p1"
        assert entry["logger"] == "elfbaby.pipelines"

    def test_event_below_level_is_dropped(self, log_dir):
        log_scrape_event("noise", {"message": "debug only"}, level=logging.NOTSET)
        assert list(log_dir.glob("elfbaby_*.jsonl")) == []


class TestShutdown:
    """Tests for the shutdown flag."""

    def test_request_and_reset(self, reset_shutdown):
        assert shutdown_requested() is False
        reset_shutdown.request_shutdown()
        assert shutdown_requested() is True
        reset_shutdown.reset()
        assert shutdown_requested() is False

    def test_singleton(self):
        assert get_shutdown_handler() is get_shutdown_handler()

    def test_cleanup_runs_callbacks_once(self, reset_shutdown):
        first = MagicMock(side_effect=RuntimeError("boom"))
        second = MagicMock()
        register_cleanup(first)
        register_cleanup(second)

        reset_shutdown.cleanup()
        reset_shutdown.cleanup()

        first.assert_called_once()
        second.assert_called_once()


class TestAffiliate:
    """Tests for Firefox profile discovery and link extraction."""

    def test_linux_default_profile(self, tmp_path):
        profiles = tmp_path / ".mozilla" / "firefox"
        (profiles / "abc.other").mkdir(parents=True)
        (profiles / "xyz.default-release").mkdir()

        assert find_firefox_profile(tmp_path, platform="linux") == profiles / "xyz.default-release"

    def test_macos_first_profile(self, tmp_path):
        profiles = tmp_path / "Library" / "Application Support" / "Firefox" / "Profiles"
        (profiles / "b.work").mkdir(parents=True)
        (profiles / "a.personal").mkdir()

        assert find_firefox_profile(tmp_path, platform="darwin") == profiles / "a.personal"

    def test_no_profiles(self, tmp_path):
        assert find_firefox_profile(tmp_path, platform="linux") is None

    @patch("elfbaby.affiliate.sync_playwright", side_effect=PlaywrightError("browser missing"))
    def test_browser_errors_return_none(self, mock_playwright, tmp_path):
        assert extract_affiliate_link("https://www.amazon.com/dp/B0AAAAAAAA", profile_dir=tmp_path) is None
