# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator

import pytest
from hypothesis import Phase, Verbosity, settings

from eventtracker.config import TrackerSettings
from eventtracker.tracker import EventTracker
from tests.fixtures import VALID_API_KEY, VALID_DEVICE_ID, RecordingPipeline, wait_for


@pytest.fixture
def pipeline() -> RecordingPipeline:
    return RecordingPipeline()


@pytest.fixture
def quiet_settings() -> TrackerSettings:
    """Settings whose interval is long enough that only the startup cycle runs."""
    return TrackerSettings(
        endpoint_url="https://collector.example.com/events",
        buffer_capacity=10,
        flush_interval_seconds=3600.0,
    )


@pytest.fixture
def tracker(quiet_settings: TrackerSettings, pipeline: RecordingPipeline) -> Iterator[EventTracker]:
    """Initialized tracker whose startup cycle has already completed."""
    t = EventTracker(quiet_settings, pipeline=pipeline)  # type: ignore[arg-type]
    t.initialize(VALID_API_KEY, VALID_DEVICE_ID)
    assert wait_for(lambda: t.health_metrics["cycles_completed"] >= 1)
    yield t
    t.close(final_flush=False)


# =============================================================================
# Hypothesis Profiles
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
