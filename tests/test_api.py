"""
Tests for the HTTP API endpoints.
"""

import pytest

from narrative_engine.api import create_app


COFFIN = "A man is buried alive in a wooden coffin with only a lighter and a phone"
ROAD_TRIP = "Two sisters on a road trip across America to scatter their father's ashes"


class TestBasics:
    """Test health, genres and error envelopes."""

    def test_health(self, client):
        """Test the health check."""
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}

    def test_genres(self, client):
        """Test the genre listing."""
        data = client.get('/api/genres').get_json()
        assert "mystery" in data["story_genres"]
        assert data["trackers"] == ["romance", "mystery", "comedy", "drama", "crime", "dialogue"]
        assert "screenplay" in data["formats"]

    def test_unknown_route(self, client):
        """Test that unknown paths return the JSON 404 envelope."""
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json()["error_code"] == "NOT_FOUND"

    def test_wrong_method(self, client):
        """Test that GET on a POST endpoint is rejected."""
        response = client.get('/api/dna')
        assert response.status_code == 405
        assert response.get_json()["error_code"] == "METHOD_NOT_ALLOWED"

    def test_non_json_body(self, client):
        """Test that a non-object body is a validation error."""
        response = client.post('/api/dna', data="premise", content_type="text/plain")
        assert response.status_code == 400
        data = response.get_json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert data["error"] == "Request body must be a JSON object."

    def test_json_list_body(self, client):
        """Test that a JSON list is not accepted as a body."""
        response = client.post('/api/dna', json=["premise"])
        assert response.status_code == 400


class TestDna:
    """Test the premise classification endpoint."""

    def test_classify(self, client):
        """Test classifying a confined premise."""
        response = client.post('/api/dna', json={"premise": COFFIN})
        assert response.status_code == 200
        data = response.get_json()
        assert data["dna"]["location_profile"]["type"] == "confined"
        assert data["dna"]["character_profile"]["scope"] == "solo"
        assert "LOCATION: CONFINED" in data["summary"]

    def test_genre_override(self, client):
        """Test that an explicit genre wins over the classifier."""
        data = client.post('/api/dna', json={"premise": COFFIN, "genre": "horror"}).get_json()
        assert data["dna"]["genre_profile"]["primary_genre"] == "horror"

    @pytest.mark.parametrize("body", [{"premise": "   "}, {"premise": ""}, {}])
    def test_invalid_premise(self, client, body):
        """Test missing and blank premises."""
        response = client.post('/api/dna', json=body)
        assert response.status_code == 400
        data = response.get_json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert "premise" in data["details"]["fields"]


class TestProfile:
    """Test profile and chapter requirement endpoints."""

    def test_profile(self, client):
        """Test the full profile response."""
        response = client.post('/api/profile', json={"premise": ROAD_TRIP, "total_chapters": 12})
        assert response.status_code == 200
        data = response.get_json()
        assert data["profile"]["locations"]["type"] == "traveling"
        assert data["profile"]["total_chapters"] == 12
        assert data["profile_summary"].startswith("=== DYNAMISM PROFILE ===")
        assert data["outline_prompt"].startswith("=== STORY DYNAMISM REQUIREMENTS ===")

    def test_confined_profile_forbids_travel(self, client):
        """Test that a confined premise never asks for new locations."""
        data = client.post('/api/profile', json={"premise": COFFIN}).get_json()
        assert data["profile"]["locations"]["min_locations_per_chapter"] == 0
        assert data["profile"]["locations"]["can_physically_travel"] is False

    def test_unknown_format(self, client):
        """Test that an unsupported format is rejected."""
        response = client.post('/api/profile', json={"premise": COFFIN, "format": "opera"})
        assert response.status_code == 400
        assert "format" in response.get_json()["details"]["fields"]

    def test_chapter_requirements(self, client):
        """Test requirements for one chapter."""
        response = client.post('/api/profile/chapter', json={
            "premise": ROAD_TRIP,
            "chapter_number": 3,
            "total_chapters": 10,
            "previous_summary": "The car broke down in Ohio.",
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data["requirements"]["chapter_number"] == 3
        assert data["requirements"]["total_chapters"] == 10
        assert data["prompt"].startswith("=== CHAPTER 3 OF 10 DYNAMISM REQUIREMENTS ===")
        assert "The car broke down in Ohio." in data["prompt"]

    def test_chapter_number_required(self, client):
        """Test that the chapter number is mandatory."""
        response = client.post('/api/profile/chapter', json={"premise": ROAD_TRIP})
        assert response.status_code == 400
        assert "chapter_number" in response.get_json()["details"]["fields"]


class TestReplay:
    """Test the dynamism replay endpoint."""

    def test_replay(self, client):
        """Test replaying a confined chapter without outside contact."""
        response = client.post('/api/dynamism/replay', json={
            "premise": COFFIN,
            "chapters": [{
                "chapter_number": 1,
                "beats": [
                    {"location": "the coffin", "characters": ["Paul"]},
                    {"location": "the coffin", "characters": ["Paul"]},
                    {"location": "the coffin", "characters": ["Paul"]},
                ],
            }],
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data["report"]["chapters_tracked"] == 1
        assert data["report"]["total_beats"] == 3
        assert any(v["type"] == "missing_requirement" for v in data["report"]["violations"])
        assert data["feedback"]
        assert data["feedback"][0]["chapter"] == 1
        assert "locations" in data["state"]

    def test_replay_needs_chapters(self, client):
        """Test that an empty beat log is rejected."""
        response = client.post('/api/dynamism/replay', json={"premise": COFFIN, "chapters": []})
        assert response.status_code == 400


class TestGenreProcess:
    """Test the genre tracker endpoint."""

    def test_unknown_tracker(self, client):
        """Test that an unknown tracker name is a 404."""
        response = client.post('/api/genre/western/process', json={"book_id": "b", "chapter_number": 1})
        assert response.status_code == 404
        data = response.get_json()
        assert data["error_code"] == "NOT_FOUND"
        assert data["details"]["resource_id"] == "western"

    def test_missing_book_id(self, client):
        """Test request validation."""
        response = client.post('/api/genre/drama/process', json={"chapter_number": 1})
        assert response.status_code == 400
        assert "book_id" in response.get_json()["details"]["fields"]

    def test_drama_state_continues(self, client):
        """Test that passing state back continues the same book."""
        extraction = {"drama": {"secrets_introduced": [{"description": "Hidden debt", "held_by": ["Tom"]}]}}
        first = client.post('/api/genre/drama/process', json={
            "book_id": "b", "chapter_number": 1, "extraction": extraction,
        }).get_json()
        assert first["delta"]["secrets_introduced"][0]["id"] == "secret_1"

        extraction = {"drama": {"secrets_introduced": [{"description": "Second family", "held_by": ["Ann"]}]}}
        second = client.post('/api/genre/drama/process', json={
            "book_id": "b", "chapter_number": 2, "extraction": extraction, "state": first["state"],
        }).get_json()
        assert second["delta"]["secrets_introduced"][0]["id"] == "secret_2"
        assert len(second["state"]["secrets"]) == 2
        assert "Hidden debt" in second["summary"]

    def test_romance_returns_drama_state(self, client):
        """Test that romance responses carry the linked drama state."""
        data = client.post('/api/genre/romance/process', json={
            "book_id": "b",
            "chapter_number": 1,
            "extraction": {"romance": {"romantic_moments": [{"type": "glance", "characters": ["Elena", "Marcus"]}]}},
        }).get_json()
        assert data["delta"]["beats_recorded"] == 1
        assert len(data["state"]["arcs"]) == 1
        assert "secrets" in data["drama_state"]

    def test_crime_reminders(self, client):
        """Test that crime responses carry procedural reminders."""
        data = client.post('/api/genre/crime/process', json={
            "book_id": "b",
            "chapter_number": 1,
            "extraction": {"crime": {"investigation_type": "murder", "lead_investigator": "Reyes"}},
            "options": {"procedural_accuracy": "realistic"},
        }).get_json()
        assert data["delta"]["investigation_id"] == "inv_1"
        assert data["procedural_reminders"][0].startswith("REALISTIC MODE")

    @pytest.mark.parametrize("tracker", ["mystery", "comedy", "dialogue"])
    def test_empty_extraction(self, client, tracker):
        """Test trackers with nothing extracted for their genre."""
        response = client.post(f'/api/genre/{tracker}/process', json={"book_id": "b", "chapter_number": 1})
        assert response.status_code == 200
        assert response.get_json()["tracker"] == tracker

    def test_suite(self, client):
        """Test the combined suite endpoint."""
        data = client.post('/api/genre/suite/process', json={
            "book_id": "b",
            "chapter_number": 1,
            "extraction": {"comedy": {"jokes": [{"setup": "Knock knock"}]}},
            "options": {"active_genres": ["comedy", "dialogue"]},
        }).get_json()
        assert set(data["delta"]) == {"comedy", "dialogue"}
        assert data["delta"]["comedy"]["jokes_added"][0]["id"] == "joke_1"
        assert data["state"]["active_genres"] == ["comedy", "dialogue"]
        assert set(data["suggestions"]) == {"comedy", "dialogue"}

    def test_invalid_extraction(self, client):
        """Test that a malformed extraction is a validation error."""
        response = client.post('/api/genre/drama/process', json={
            "book_id": "b",
            "chapter_number": 1,
            "extraction": {"drama": {"dramatic_moments": ["tea party"]}},
        })
        assert response.status_code == 400
        assert response.get_json()["error_code"] == "VALIDATION_ERROR"


class TestRateLimiting:
    """Test the analysis rate limit."""

    def test_limit_exceeded(self):
        """Test that the analysis limit returns the JSON 429 envelope."""
        app = create_app({"TESTING": True, "ANALYSIS_RATE_LIMIT": "2 per minute"})
        client = app.test_client()
        for _ in range(2):
            assert client.post('/api/dna', json={"premise": COFFIN}).status_code == 200

        response = client.post('/api/dna', json={"premise": COFFIN})
        assert response.status_code == 429
        assert response.get_json()["error_code"] == "RATE_LIMIT_EXCEEDED"
