# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for unit tests."""

import pytest

from streamlab.config import Config, set_default_config


@pytest.fixture(autouse=True)
def default_config():
    """Pin the process-wide config so a stray .streamlab.yml cannot leak in."""
    config = Config.from_dict({})
    set_default_config(config)
    yield config
    set_default_config(None)
