"""Shared fixtures: a test profile and fake requests.Response objects."""

import json
from unittest.mock import MagicMock

import pytest

from opnmanager.config import ApiProfile, StaticProfileStore


def make_response(status_code=200, json_body=None, text=None, url="https://fw.test:8443/api"):
    """Build a MagicMock that quacks like requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.url = url
    if json_body is not None:
        response.json.return_value = json_body
        response.text = json.dumps(json_body)
    else:
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        response.text = text if text is not None else ""
    return response


@pytest.fixture
def profile():
    return ApiProfile(
        api_url="https://fw.test",
        port=8443,
        api_key="key123",
        api_secret="secret456",
        name="lab",
        is_default=True,
    )


@pytest.fixture
def store(profile):
    return StaticProfileStore([profile])


@pytest.fixture
def gateway():
    """HttpGateway stand-in; tests set gateway.issue.return_value / side_effect."""
    return MagicMock()


@pytest.fixture(name="make_response")
def make_response_fixture():
    return make_response
