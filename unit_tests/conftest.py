# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.
#
# See LICENSE for more details.
#
# Copyright (c) 2026 ScyllaDB

import pytest

from docstress.config import GlobalConfig
from unit_tests.fakes import RecordingStore


@pytest.fixture
def make_config():
    def _make_config(**overrides):
        params = {"store": "memory", "log_interval": 0.05}
        params.update(overrides)
        return GlobalConfig(**params).validate()

    return _make_config


@pytest.fixture
def recording_store():
    return RecordingStore()
