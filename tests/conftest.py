"""
Shared fixtures for content-reveal tests.
"""

import pytest

from content_reveal.config import StreamingConfig
from content_reveal.markup import Element, Surface
from content_reveal.monitoring import StreamingMetrics
from content_reveal.runtime import ManualClock, StreamingEngine
from content_reveal.surface import ResourceRegistry


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def config():
    return StreamingConfig(seed=42)


@pytest.fixture
def surface():
    return Surface()


@pytest.fixture
def target(surface):
    """Connected, empty render target."""
    element = Element("div", {"class": "message-content"})
    surface.append_child(element)
    return element


@pytest.fixture
def registry(clock):
    return ResourceRegistry(clock)


@pytest.fixture
def metrics():
    return StreamingMetrics()


@pytest.fixture
def engine(clock, config, registry, metrics):
    return StreamingEngine(clock, config, registry=registry, metrics=metrics)
