"""Integration test fixtures using Docker.

Provides containerized PostgreSQL and Redis. Tests are skipped when Docker
is not available.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Iterator
from datetime import date, time as clock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from clinicore.persistence.db import Database
from clinicore.persistence.tables import AppointmentTable, Base, DoctorTable, PatientTable
from tests.integration.docker_utils import DockerService, get_docker_client, run_container


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = get_docker_client()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def postgres_container(docker_client) -> Iterator[DockerService]:
    env = {
        "POSTGRES_USER": "clinic",
        "POSTGRES_PASSWORD": "clinic",
        "POSTGRES_DB": "clinic",
    }
    with run_container(
        docker_client, "postgres:16-alpine", env=env, ports={"5432/tcp": None}
    ) as postgres:
        yield postgres


@pytest.fixture(scope="session")
def redis_container(docker_client) -> Iterator[DockerService]:
    with run_container(docker_client, "redis:7-alpine", ports={"6379/tcp": None}) as redis:
        yield redis


@pytest.fixture(scope="session")
def database_url(postgres_container: DockerService) -> str:
    host = postgres_container.host
    port = postgres_container.port(5432)
    return f"postgresql+asyncpg://clinic:clinic@{host}:{port}/clinic"


@pytest.fixture(scope="session")
def redis_url(redis_container: DockerService) -> str:
    return f"redis://{redis_container.host}:{redis_container.port(6379)}/0"


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncIterator[Database]:
    """Database with fresh tables and a small seeded clinic."""
    engine = create_async_engine(database_url, echo=False)
    await _wait_for_engine(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    database = Database(engine)
    async with database.session() as session:
        session.add_all(
            [
                DoctorTable(id=3, name="Dr. Grey", specialization="Cardiology"),
                DoctorTable(id=5, name="Dr. House", specialization="Diagnostics"),
                PatientTable(id=7, name="Ada Patient"),
                PatientTable(id=8, name="Bo Patient"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                _appointment(40, 3, 7, "accepted", date(2025, 3, 14), clock(8, 0)),
                _appointment(41, 3, 8, "pending", date(2025, 3, 15), clock(8, 0)),
                _appointment(42, 3, 7, "pending", date(2025, 3, 14), clock(10, 0)),
                _appointment(43, 3, 8, "pending", date(2025, 3, 14), clock(9, 0)),
                _appointment(44, 5, 8, "pending", date(2025, 3, 14), clock(9, 0)),
            ]
        )

    yield database

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await database.close()


@pytest_asyncio.fixture
async def redis_client(redis_url: str):
    """Create a Redis client for tests."""
    import redis.asyncio as redis

    client = redis.from_url(redis_url)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()
    await client.aclose()


def _appointment(
    appointment_id: int,
    doctor_id: int,
    patient_id: int,
    status: str,
    day: date,
    start: clock,
) -> AppointmentTable:
    return AppointmentTable(
        id=appointment_id,
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=status,
        appointment_date=day,
        start_time=start,
        end_time=clock(start.hour, 30),
    )


async def _wait_for_engine(engine, timeout: float = 30.0) -> None:
    """Wait for the database engine to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            async with engine.connect():
                return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)


async def _wait_for_redis(client, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
