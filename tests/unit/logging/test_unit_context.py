# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — context variables per task."""

from __future__ import annotations

import asyncio

import pytest

from pagereader.logging.context import (
    LogContext,
    clear_context,
    get_context,
    set_page_context,
    set_step,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_empty(self):
        ctx = get_context()
        assert ctx.as_dict() == {}
        assert ctx.label() == ""

    def test_page_context(self):
        set_page_context("0123456789abcdef", 4, 2)
        ctx = get_context()
        assert ctx.page == 4
        assert ctx.generation == 2
        assert ctx.label() == "01234567:p4#g2"

    def test_page_context_resets_step(self):
        set_page_context("doc", 1)
        set_step("translation")
        set_page_context("doc", 2)
        assert get_context().step is None

    def test_label_without_generation(self):
        assert LogContext(document="doc", page=9).label() == "doc:p9"

    def test_clear(self):
        set_page_context("doc", 1, 1)
        clear_context()
        assert get_context() == LogContext()

    @pytest.mark.asyncio
    async def test_tasks_are_isolated(self):
        async def cycle(page: int) -> int | None:
            set_page_context("doc", page)
            await asyncio.sleep(0)
            return get_context().page

        assert await asyncio.gather(cycle(1), cycle(2)) == [1, 2]
        assert get_context().page is None
