"""Unit tests for the process logging setup (:mod:`folio.logging`)."""

from __future__ import annotations

import logging
from logging.handlers import MemoryHandler
from pathlib import Path

import pytest
from rich.logging import RichHandler

from folio.logging import (
    LoggingOptions,
    ThirdPartyPrefixFilter,
    config_flight_recorder,
    configure_logging,
    console_level,
)

# pylint: disable=magic-value-comparison


@pytest.mark.parametrize(
    ("verbose", "quiet", "expected"),
    [
        (0, 0, logging.WARNING),
        (1, 0, logging.INFO),
        (2, 0, logging.DEBUG),
        (5, 0, logging.DEBUG),
        (0, 1, logging.ERROR),
        (0, 9, logging.CRITICAL),
        (1, 1, logging.WARNING),
    ],
)
def test_console_level(verbose, quiet, expected):
    assert console_level(verbose, quiet) == expected


@pytest.mark.parametrize(
    ("name", "prefix"),
    [
        ("folio", ""),
        ("folio.bootstrap.host", ""),
        ("alembic.runtime.migration", "[alembic]"),
        ("foliox", "[foliox]"),
    ],
)
def test_third_party_prefix(name, prefix):
    record = logging.LogRecord(name, logging.INFO, __file__, 1, "msg", None, None)

    assert ThirdPartyPrefixFilter().filter(record)
    assert record.prefix == prefix


def test_flight_recorder_writes_only_after_a_warning(tmp_path: Path):
    path = tmp_path / "latest.log"
    recorder = config_flight_recorder(path, capacity=10)
    logger = logging.getLogger("folio.tests.flight_recorder")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    logger.addHandler(recorder)
    try:
        logger.debug("quiet detail")
        assert not path.exists()

        logger.warning("something odd")
        recorder.flush()
    finally:
        logger.removeHandler(recorder)
        recorder.close()
        logger.propagate = True

    text = path.read_text(encoding="utf-8")
    assert "quiet detail" in text
    assert "something odd" in text


def test_configure_logging(tmp_path: Path):
    options = LoggingOptions(
        level=logging.INFO,
        log_path=tmp_path / "latest.log",
        logger_levels={"folio.tests.noisy": logging.ERROR},
    )

    handlers = configure_logging(options)
    try:
        assert [type(h) for h in handlers] == [RichHandler, MemoryHandler]
        assert all(h in logging.getLogger().handlers for h in handlers)
        assert logging.getLogger("folio.tests.noisy").level == logging.ERROR
        assert handlers[0].level == logging.INFO
    finally:
        for handler in handlers:
            handler.close()
        logging.getLogger("folio.tests.noisy").setLevel(logging.NOTSET)


def test_configure_logging_without_flight_recorder():
    options = LoggingOptions(debug=True)

    handlers = configure_logging(options)

    assert not options.flight_recorder
    assert len(handlers) == 1
    assert handlers[0].level == logging.DEBUG
