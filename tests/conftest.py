"""
Shared fixtures for the relay tests.
"""
import pytest

from helpers import FIXED_TIME
from relay.broadcaster import Broadcaster
from relay.commands import CommandProcessor
from relay.registry import PeerRegistry


@pytest.fixture
def registry():
    return PeerRegistry()


@pytest.fixture
def processor(registry):
    return CommandProcessor(registry, Broadcaster(registry), clock=lambda: FIXED_TIME)
