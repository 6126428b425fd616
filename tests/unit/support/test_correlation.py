"""
Unit tests for correlation module.

Covers ID format, scope restoration and isolation between concurrent tasks.
"""

import asyncio
import contextvars

import pytest

from yeelight_lan.correlation import (
    correlation_context,
    current_correlation_id,
    ensure_correlation_id,
    new_correlation_id,
)


class TestNewCorrelationId:
    def test_tagged_with_origin(self):
        corr_id = new_correlation_id("line")

        origin, suffix = corr_id.split("-")
        assert origin == "line"
        assert len(suffix) == 8
        int(suffix, 16)

    def test_unique(self):
        assert len({new_correlation_id() for _ in range(20)}) == 20


class TestCorrelationContext:
    def test_nested_scope_restores_outer(self):
        with correlation_context("cmd") as outer:
            with correlation_context("line") as inner:
                assert current_correlation_id() == inner
                assert inner.startswith("line-")
            assert current_correlation_id() == outer

    def test_explicit_id(self):
        with correlation_context(correlation_id="fixed-id") as corr_id:
            assert corr_id == "fixed-id"
            assert current_correlation_id() == "fixed-id"

    def test_restored_after_exception(self):
        with correlation_context("cmd") as outer:
            with pytest.raises(RuntimeError), correlation_context("line"):
                raise RuntimeError

            assert current_correlation_id() == outer

    @pytest.mark.asyncio
    async def test_tasks_get_isolated_ids(self):
        async def worker() -> str | None:
            with correlation_context("cmd"):
                await asyncio.sleep(0)
                return current_correlation_id()

        first, second = await asyncio.gather(worker(), worker())

        assert first != second


class TestEnsureCorrelationId:
    def test_creates_when_missing(self):
        def run() -> tuple[str, str | None]:
            corr_id = ensure_correlation_id("controller")
            return corr_id, current_correlation_id()

        corr_id, bound = contextvars.copy_context().run(run)

        assert corr_id.startswith("controller-")
        assert bound == corr_id

    def test_keeps_existing(self):
        with correlation_context(correlation_id="existing"):
            assert ensure_correlation_id() == "existing"
