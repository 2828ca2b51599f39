"""Shared pytest fixtures for archive lifecycle tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from archivelib.lifecycle.checkpoint import Checkpointer
from archivelib.lifecycle.context import LifecycleContext
from archivelib.lifecycle.controller import LifecycleController
from archivelib.telemetry import Telemetry
from tests.helpers import FakeEngine, ManualClock


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def telemetry_and_exporter():
    return Telemetry.for_testing()


@pytest.fixture
def context() -> LifecycleContext:
    return LifecycleContext()


@pytest.fixture
def controller(context: LifecycleContext, engine: FakeEngine, telemetry_and_exporter) -> LifecycleController:
    telemetry, _ = telemetry_and_exporter
    return LifecycleController(context, engine, telemetry)


@pytest.fixture
def checkpointer(context: LifecycleContext, engine: FakeEngine, telemetry_and_exporter) -> Checkpointer:
    telemetry, _ = telemetry_and_exporter
    return Checkpointer(context, engine, telemetry)


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "Documents" / "Archive"


@pytest.fixture
async def open_context(context: LifecycleContext, controller: LifecycleController, store_path: Path) -> LifecycleContext:
    """Context whose store opened successfully."""
    await controller.initialize(store_path)
    return context
