"""Shared fixtures for the skillcanvas test suite."""

import pytest

from skillcanvas.backend.canvas_manager import CanvasManager
from skillcanvas.backend.storage import MemoryStore, ProjectRepository
from tests.helpers import FakeScheduler


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repository(store):
    return ProjectRepository(store)


@pytest.fixture
def manager(repository, scheduler):
    """A CanvasManager on an in-memory store whose autosave timer is fired by hand."""
    return CanvasManager(repository, autosave_delay=0.5, scheduler=scheduler)
