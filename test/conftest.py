"""
Fixtures for tests
"""

import json

import pytest

from .shared import DEPLOYED_ACCOUNT_CONFIG
from .util import FakeProvider


@pytest.fixture(name="fake_provider")
def fixture_fake_provider():
    """
    Scripted network collaborator
    """
    return FakeProvider()


@pytest.fixture(name="account_config_path")
def fixture_account_config_path(tmp_path) -> str:
    """
    Path of a deployed account config
    """
    path = tmp_path / "account.json"
    path.write_text(json.dumps(DEPLOYED_ACCOUNT_CONFIG), encoding="utf-8")
    return str(path)
