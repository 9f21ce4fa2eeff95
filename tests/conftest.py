"""
Shared fixtures for the whole suite.
"""

import os

import pytest

AUTH_VARIABLES = ("API_AUTH_ENABLED", "API_KEY")


@pytest.fixture(autouse=True)
def reset_auth_env():
    """Run every test with API authentication off unless it turns it on."""
    saved = {name: os.environ.get(name) for name in AUTH_VARIABLES}
    os.environ["API_AUTH_ENABLED"] = "false"

    yield

    for name, value in saved.items():
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value
