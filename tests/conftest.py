"""
Pytest configuration and shared fixtures.
"""

import json
from pathlib import Path

import pytest

from amm_twap_analyzer.models.core import Observation, PoolSnapshot
from amm_twap_analyzer.utils.structured_logging import logging_manager

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Oldest and newest entries of the observation fixture
FIXTURE_START = Observation(timestamp=1755187080, cumulative_tick=-576701345305)
FIXTURE_END = Observation(timestamp=1755188942, cumulative_tick=-576731966831)


@pytest.fixture
def pool_state_path():
    return FIXTURES_DIR / "pool_state.json"


@pytest.fixture
def observation_state_path():
    return FIXTURES_DIR / "observation_state.json"


@pytest.fixture
def pool_state_raw(pool_state_path):
    """Decoded pool state account in typed-wrapper form."""
    with open(pool_state_path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def observation_state_raw(observation_state_path):
    """Decoded observation state account with unordered and empty slots."""
    with open(observation_state_path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_pool():
    return PoolSnapshot(current_tick=-16520, decimals0=9, decimals1=6)


@pytest.fixture
def smooth_observations():
    """Six observations with steady, non-repeating tick movement over 1862 seconds."""
    return [
        FIXTURE_START,
        Observation(timestamp=1755187104, cumulative_tick=-576701737537),
        Observation(timestamp=1755188018, cumulative_tick=-576716725436),
        Observation(timestamp=1755188764, cumulative_tick=-576729025280),
        Observation(timestamp=1755188780, cumulative_tick=-576729289136),
        FIXTURE_END,
    ]


@pytest.fixture(autouse=True)
def reset_logging():
    """Let every test configure logging from scratch."""
    logging_manager.reset()
    yield
    logging_manager.reset()
