"""Shared test fixtures.

Resets module-level singletons between tests so settings patched by one
test never leak into the next.
"""

from __future__ import annotations

import pytest

from src.app import config
from src.app.services import llm


@pytest.fixture(autouse=True)
def _reset_singletons():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()
    llm._llm_service = None
