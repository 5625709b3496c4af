# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Fixtures for workflow engine tests
"""

import pytest

from dotportion.workflow.connections import ConnectionManager
from dotportion.workflow.emitter import UpdateEmitter
from dotportion.workflow.event_log import EventLog


@pytest.fixture
def event_log(tmp_path):
    return EventLog(tmp_path / "executions")


@pytest.fixture
def connections():
    return ConnectionManager()


@pytest.fixture
def emitter(event_log, connections):
    return UpdateEmitter(event_log, connections)
