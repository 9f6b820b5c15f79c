"""Marks every test under tests/api so HTTP-level tests can be selected with -m api."""

import pytest


def pytest_collection_modifyitems(items):
    for item in items:
        if "/api/" in str(item.fspath):
            item.add_marker(pytest.mark.api)
