"""Unit tests for request-scoped logging helpers."""

import logging

import pytest

from purchase_links.logging_utils import (
    RequestIdContext,
    RequestIdFilter,
    generate_request_id,
    get_request_id,
    mask_token,
    setup_logging,
)


@pytest.mark.unit
class TestMaskToken:
    def test_masks_long_token(self):
        token = "eyJidXNpbmVzc19pZCI6ImJpel80MiJ9.c2lnbmF0dXJl"
        masked = mask_token(token)
        assert masked == f"eyJidXNp...({len(token)} chars)"
        assert token not in masked

    def test_empty_and_non_string(self):
        assert mask_token("") == "<empty>"
        assert mask_token(None) == "<empty>"
        assert mask_token(42) == "<int>"


@pytest.mark.unit
class TestRequestId:
    def test_generate_format(self):
        request_id = generate_request_id()
        assert request_id.startswith("req-")
        assert len(request_id) == 16

    def test_context_sets_and_resets(self):
        assert get_request_id() is None
        with RequestIdContext("req-outer") as outer:
            assert outer == get_request_id() == "req-outer"
            with RequestIdContext() as inner:
                assert get_request_id() == inner != outer
            assert get_request_id() == "req-outer"
        assert get_request_id() is None

    def test_filter_adds_request_id(self):
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
        RequestIdFilter().filter(record)
        assert record.request_id == "no-request-id"

        with RequestIdContext("req-123"):
            RequestIdFilter().filter(record)
        assert record.request_id == "req-123"


@pytest.mark.unit
class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    @pytest.mark.parametrize("log_format", ["json", "text"])
    def test_installs_single_handler(self, log_format, capsys):
        setup_logging("DEBUG", log_format)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

        with RequestIdContext("req-abc"):
            logging.getLogger("purchase_links.test").info("hello")
        out = capsys.readouterr().out
        assert "req-abc" in out
        assert "hello" in out
