"""Global pytest configuration and fixtures."""

from __future__ import annotations

from datetime import time

import pytest

from clinicore.core.models import AppointmentStatus, Doctor
from tests.fakes import FakeCache, FakeStore, RecordingNotifier, make_detail


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: needs Docker for PostgreSQL and Redis")


@pytest.fixture
def call_log() -> list[str]:
    return []


@pytest.fixture
def fake_cache(call_log: list[str]) -> FakeCache:
    return FakeCache(call_log)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore(
        appointments=[
            make_detail(42, status=AppointmentStatus.PENDING),
            make_detail(43, status=AppointmentStatus.ACCEPTED, start_time=time(8, 0)),
            make_detail(44, doctor_id=5, patient_id=8),
        ],
        doctors=[
            Doctor(id=3, name="Dr. Grey", specialization="Cardiology"),
            Doctor(id=5, name="Dr. House", specialization="Diagnostics"),
        ],
    )


@pytest.fixture
def notifier(call_log: list[str]) -> RecordingNotifier:
    return RecordingNotifier(call_log)
