import asyncio
import inspect
import os
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trade_matcher.config import get_matcher_settings  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.fixture(autouse=True)
def _fresh_matcher_settings(monkeypatch: pytest.MonkeyPatch):
    """Keep TRADE_MATCHER_* variables from the host out of the suite."""

    for name in list(os.environ):
        if name.startswith("TRADE_MATCHER_"):
            monkeypatch.delenv(name, raising=False)
    get_matcher_settings.cache_clear()
    yield
    get_matcher_settings.cache_clear()


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            arguments = {
                name: pyfuncitem.funcargs[name]
                for name in inspect.signature(test_function).parameters
                if name in pyfuncitem.funcargs
            }
            loop.run_until_complete(test_function(**arguments))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None
