"""
Shared pytest fixtures for the test suite.

Premises, profiles and app/CLI fixtures used across several test files.
"""

import pytest
from click.testing import CliRunner

from narrative_engine.api import create_app
from narrative_engine.dynamism import classify_premise, generate_dynamism_profile
from narrative_engine.genre import DramaTracker, RomanceTracker


COFFIN_PREMISE = "A man is buried alive in a wooden coffin with only a lighter and a phone"
ROAD_TRIP_PREMISE = "Two sisters on a road trip across America to scatter their father's ashes"
COURTROOM_PREMISE = "A public defender takes on an impossible case in a small courthouse"


# Premise fixtures
@pytest.fixture
def coffin_premise():
    """The canonical confined, solo premise."""
    return COFFIN_PREMISE


@pytest.fixture
def coffin_dna():
    """Story DNA for the coffin premise."""
    return classify_premise(COFFIN_PREMISE)


@pytest.fixture
def coffin_profile(coffin_dna):
    """Dynamism profile for the coffin premise (10 chapters)."""
    return generate_dynamism_profile(coffin_dna, total_chapters=10)


@pytest.fixture
def road_trip_profile():
    """Dynamism profile for a traveling duo (10 chapters)."""
    return generate_dynamism_profile(classify_premise(ROAD_TRIP_PREMISE), total_chapters=10)


@pytest.fixture
def limited_profile():
    """Dynamism profile for a limited-location premise (10 chapters)."""
    return generate_dynamism_profile(classify_premise(COURTROOM_PREMISE), total_chapters=10)


# Genre tracker fixtures
@pytest.fixture
def drama_tracker():
    """Fresh drama tracker."""
    return DramaTracker("book-1")


@pytest.fixture
def romance_tracker(drama_tracker):
    """Romance tracker wired to the shared drama tracker."""
    return RomanceTracker("book-1", drama=drama_tracker)


# App fixtures
@pytest.fixture
def app():
    """Flask app with rate limiting disabled."""
    flask_app = create_app({"TESTING": True, "RATELIMIT_ENABLED": False})
    return flask_app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def runner():
    """Click CLI runner."""
    return CliRunner()
