"""Unit tests for request-scoped logging (:mod:`folio.request_logging`)."""

from __future__ import annotations

import logging
import threading

import pytest

from folio.adapters.request_context import ContextVarRequestContextAccessor
from folio.bootstrap.registry import ServiceRegistry
from folio.interfaces.request_context import RequestContext, RequestContextAccessor
from folio.request_logging import (
    RequestContextFilter,
    RequestLogEntry,
    RequestLogStore,
    RequestScopedHandler,
    install_request_logging,
    uninstall_request_logging,
)

# pylint: disable=redefined-outer-name
# pylint: disable=magic-value-comparison


@pytest.fixture
def accessor() -> ContextVarRequestContextAccessor:
    return ContextVarRequestContextAccessor()


@pytest.fixture
def store() -> RequestLogStore:
    return RequestLogStore(max_requests=3)


@pytest.fixture
def captured(accessor, store):
    """A private logger wired to a request-scoped handler."""
    logger = logging.getLogger("folio.tests.request_logging")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = RequestScopedHandler(accessor, store)
    logger.addHandler(handler)
    yield logger
    logger.removeHandler(handler)
    logger.propagate = True


def test_accessor_is_a_request_context_accessor(accessor):
    assert isinstance(accessor, RequestContextAccessor)


def test_accessor_yields_none_outside_a_request(accessor):
    assert accessor.current() is None


def test_accessor_restores_previous_context(accessor):
    outer, inner = RequestContext("outer"), RequestContext("inner")

    with accessor.activate(outer):
        with accessor.activate(inner):
            assert accessor.current() is inner
        assert accessor.current() is outer
    assert accessor.current() is None


def test_accessors_do_not_share_state():
    first, second = ContextVarRequestContextAccessor(), ContextVarRequestContextAccessor()

    with first.activate(RequestContext("r1")):
        assert second.current() is None


def test_records_grouped_by_request(captured, accessor, store):
    with accessor.activate(RequestContext("r1", "/Home/Index")):
        captured.info("listing books")
    with accessor.activate(RequestContext("r2")):
        captured.warning("slow query")

    assert [e.message for e in store.get("r1")] == ["[r1] INFO folio.tests.request_logging: listing books"]
    assert store.get("r2") == [
        RequestLogEntry("WARNING", "folio.tests.request_logging", "[r2] WARNING folio.tests.request_logging: slow query")
    ]


def test_records_outside_a_request_are_unscoped(captured, store):
    captured.info("startup")

    assert store.request_ids() == []
    [entry] = store.unscoped()
    assert entry.message.startswith("[-] INFO")


def test_concurrent_requests_are_not_mixed(captured, accessor, store):
    barrier = threading.Barrier(3)

    def request(request_id: str):
        with accessor.activate(RequestContext(request_id)):
            barrier.wait()
            for i in range(5):
                captured.info("%s line %d", request_id, i)

    threads = [threading.Thread(target=request, args=(f"r{n}",)) for n in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for n in range(3):
        lines = store.get(f"r{n}")
        assert len(lines) == 5
        assert all(line.message.startswith(f"[r{n}]") for line in lines)


def test_context_is_read_per_record_not_at_construction(accessor, store):
    """One handler built before any request serves every later request."""
    handler = RequestScopedHandler(accessor, store)
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)

    with accessor.activate(RequestContext("late")):
        handler.handle(record)

    assert len(store.get("late")) == 1


class TestRequestLogStore:
    @staticmethod
    def test_oldest_request_is_evicted(store):
        for n in range(5):
            store.add(f"r{n}", RequestLogEntry("INFO", "x", "m"))

        assert store.request_ids() == ["r2", "r3", "r4"]
        assert store.get("r0") == []

    @staticmethod
    def test_unscoped_lines_are_bounded():
        store = RequestLogStore(max_unscoped=2)
        for n in range(3):
            store.add(None, RequestLogEntry("INFO", "x", str(n)))

        assert [e.message for e in store.unscoped()] == ["1", "2"]

    @staticmethod
    def test_clear(store):
        store.add("r", RequestLogEntry("INFO", "x", "m"))
        store.add(None, RequestLogEntry("INFO", "x", "m"))

        store.clear()

        assert store.request_ids() == [] and store.unscoped() == []

    @staticmethod
    def test_max_requests_must_be_positive():
        with pytest.raises(ValueError):
            RequestLogStore(max_requests=0)


def test_filter_stamps_request_id(accessor):
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    log_filter = RequestContextFilter(accessor)

    assert log_filter.filter(record)
    assert record.request_id == "-"

    with accessor.activate(RequestContext("abc")):
        log_filter.filter(record)
    assert record.request_id == "abc"


class TestInstall:
    @staticmethod
    def _provider():
        accessor = ContextVarRequestContextAccessor()
        return (
            ServiceRegistry()
            .add_instance(RequestContextAccessor, accessor)
            .add_singleton(RequestLogStore, lambda _: RequestLogStore())
            .build()
        )

    def test_install_is_idempotent_per_provider(self):
        logger = logging.getLogger("folio.tests.install")
        provider = self._provider()

        first = install_request_logging(provider, logger)
        second = install_request_logging(provider, logger)
        try:
            assert first is second
            assert logger.handlers.count(first) == 1
        finally:
            uninstall_request_logging(first, logger)

        assert first not in logger.handlers

    def test_each_provider_gets_its_own_handler(self):
        logger = logging.getLogger("folio.tests.install")
        first = install_request_logging(self._provider(), logger)
        second = install_request_logging(self._provider(), logger)
        try:
            assert first is not second
        finally:
            uninstall_request_logging(first, logger)
            uninstall_request_logging(second, logger)
