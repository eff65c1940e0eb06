"""Unit tests for the global asyncio exception hook."""

import asyncio
from unittest.mock import MagicMock

import pytest

from cobalt_core.diagnostics import ErrorCode, Severity, install_asyncio_handler
from cobalt_core.diagnostics.handlers import GLOBAL_SOURCE


class TestAsyncioHandler:
    @pytest.mark.asyncio
    async def test_unhandled_exception_is_logged(self, diagnostics):
        loop = asyncio.get_running_loop()
        previous = MagicMock()
        loop.set_exception_handler(previous)
        uninstall = install_asyncio_handler(diagnostics)
        try:
            context = {"message": "Task exception was never retrieved", "exception": ValueError("lost")}
            loop.call_exception_handler(context)
        finally:
            uninstall()

        error = diagnostics.errors[0]
        assert error.code == ErrorCode.UNHANDLED_PROMISE_REJECTION
        assert error.severity == Severity.HIGH
        assert error.source == GLOBAL_SOURCE
        assert error.message == "lost"
        assert error.details == {
            "reason": "ValueError('lost')",
            "context_message": "Task exception was never retrieved",
        }
        previous.assert_called_once_with(loop, context)
        assert loop.get_exception_handler() is previous
        loop.set_exception_handler(None)

    @pytest.mark.asyncio
    async def test_context_without_exception_uses_message(self, diagnostics):
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _loop, _context: None)
        uninstall = install_asyncio_handler(diagnostics, loop)
        try:
            loop.call_exception_handler({"message": "callback failed"})
        finally:
            uninstall()
            loop.set_exception_handler(None)

        assert diagnostics.errors[0].message == "callback failed"
        assert diagnostics.errors[0].details["reason"] is None

    @pytest.mark.asyncio
    async def test_exception_with_broken_str_is_logged(self, diagnostics):
        class Weird(Exception):
            def __str__(self):
                raise RuntimeError("no text")

            def __repr__(self):
                raise RuntimeError("no repr")

        loop = asyncio.get_running_loop()
        loop.set_exception_handler(lambda _loop, _context: None)
        uninstall = install_asyncio_handler(diagnostics, loop)
        try:
            loop.call_exception_handler({"message": "callback failed", "exception": Weird()})
        finally:
            uninstall()
            loop.set_exception_handler(None)

        error = diagnostics.errors[0]
        assert error.code == ErrorCode.UNHANDLED_PROMISE_REJECTION
        assert error.message == "Weird"
        assert error.details["reason"] == "<Weird>"
