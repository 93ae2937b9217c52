"""
Flask route handlers for the Narrative Engine API.

Every endpoint is stateless: callers pass back the state returned by the
previous call to continue a book.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from flask import Flask
    from flask_limiter import Limiter

from flask import current_app, jsonify

from ..config import SUPPORTED_FORMATS
from ..dynamism import (
    GENRE_RULES,
    DynamismTracker,
    build_book_outline_prompt,
    build_chapter_outline_prompt,
    classify_premise,
    get_chapter_requirements,
    summarize_dynamism_profile,
    summarize_story_dna,
)
from ..genre import (
    GENRES,
    ComedyTracker,
    CrimeTracker,
    DialogueAnalyzer,
    DramaTracker,
    GenreExtraction,
    GenreTrackerSuite,
    MysteryTracker,
    RomanceTracker,
)
from ..utils.errors import NotFoundError
from .helpers import build_story, parse_body
from .schemas import ChapterRequest, GenreProcessRequest, PremiseRequest, ProfileRequest, ReplayRequest

logger = logging.getLogger(__name__)


def _build_tracker(name: str, payload: GenreProcessRequest):
    """Instantiate a single tracker (or the suite) from a process request."""
    options = payload.options
    book_id = payload.book_id
    if name == "suite":
        return GenreTrackerSuite(
            book_id,
            options.get("active_genres"),
            state=payload.state,
            central_mystery=options.get("central_mystery", ""),
            procedural_accuracy=options.get("procedural_accuracy"),
        )
    if name == "romance":
        drama = DramaTracker(book_id, state=options.get("drama_state"))
        return RomanceTracker(book_id, state=payload.state, drama=drama)
    if name == "mystery":
        return MysteryTracker(book_id, options.get("central_mystery", ""), state=payload.state)
    if name == "crime":
        return CrimeTracker(book_id, options.get("procedural_accuracy"), state=payload.state)
    if name == "comedy":
        return ComedyTracker(book_id, state=payload.state)
    if name == "drama":
        return DramaTracker(book_id, state=payload.state)
    return DialogueAnalyzer(book_id, state=payload.state)


def register_routes(flask_app: 'Flask', limiter_instance: 'Limiter') -> None:
    """
    Register all application routes.

    Args:
        flask_app: Flask application instance
        limiter_instance: Limiter instance for rate limiting
    """

    @flask_app.route('/api/health')
    def health():
        """
        Health check endpoint.

        Returns:
            JSON response with status "ok" indicating the service is running
        """
        return jsonify({"status": "ok"})

    @flask_app.route('/api/genres', methods=['GET'])
    def get_genres():
        """
        List the story genres the classifier knows, the genre trackers and
        the supported output formats.
        """
        return jsonify({
            "story_genres": [rule.value for rule in GENRE_RULES],
            "trackers": GENRES,
            "formats": SUPPORTED_FORMATS,
        })

    @flask_app.route('/api/dna', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["ANALYSIS_RATE_LIMIT"])
    def classify():
        """
        Classify a premise into Story DNA.

        Request Body (JSON):
            - premise (str, required): Story premise
            - genre (str, optional): Genre override

        Returns:
            JSON with "dna" and a human-readable "summary"
        """
        payload = parse_body(PremiseRequest)
        dna = classify_premise(payload.premise, payload.genre)
        return jsonify({"dna": dna.to_dict(), "summary": summarize_story_dna(dna)})

    @flask_app.route('/api/profile', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["ANALYSIS_RATE_LIMIT"])
    def profile():
        """
        Classify a premise and derive its dynamism profile.

        Request Body (JSON):
            - premise (str, required): Story premise
            - genre (str, optional): Genre override
            - format (str, optional): Output format
            - total_chapters (int, optional): Planned chapter count

        Returns:
            JSON with dna, profile, both summaries and the book outline prompt
        """
        payload = parse_body(ProfileRequest)
        dna, dynamism = build_story(payload)
        return jsonify({
            "dna": dna.to_dict(),
            "profile": dynamism.to_dict(),
            "dna_summary": summarize_story_dna(dna),
            "profile_summary": summarize_dynamism_profile(dynamism),
            "outline_prompt": build_book_outline_prompt(dynamism, dna),
        })

    @flask_app.route('/api/profile/chapter', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["ANALYSIS_RATE_LIMIT"])
    def chapter_requirements():
        """
        Requirements and outline prompt for one chapter.

        Request Body (JSON):
            - premise, genre, format, total_chapters: as for /api/profile
            - chapter_number (int, required): 1-based chapter number
            - previous_summary (str, optional): Summary of the previous chapter
        """
        payload = parse_body(ChapterRequest)
        _, dynamism = build_story(payload)
        requirements = get_chapter_requirements(dynamism, payload.chapter_number)
        prompt = build_chapter_outline_prompt(
            dynamism,
            payload.chapter_number,
            previous_chapter_summary=payload.previous_summary,
        )
        return jsonify({"requirements": requirements.to_dict(), "prompt": prompt})

    @flask_app.route('/api/dynamism/replay', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["ANALYSIS_RATE_LIMIT"])
    def replay():
        """
        Replay a sequence of beats through the dynamism tracker.

        Request Body (JSON):
            - premise, genre, format, total_chapters: as for /api/profile
            - chapters (list, required): [{chapter_number, beats: [{location,
              characters, has_external_contact, beat_number?}]}]

        Returns:
            JSON with the final report, per-beat feedback and tracker state
        """
        payload = parse_body(ReplayRequest)
        _, dynamism = build_story(payload)
        tracker = DynamismTracker(dynamism)

        feedback = []
        for chapter in payload.chapters:
            tracker.start_chapter(chapter.chapter_number)
            for index, beat in enumerate(chapter.beats, start=1):
                number = beat.beat_number or index
                tracker.track_beat(number, beat.location, beat.characters, beat.has_external_contact)
                text = tracker.get_beat_feedback()
                if text:
                    feedback.append({"chapter": chapter.chapter_number, "beat": number, "feedback": text})

        report = tracker.generate_report()
        logger.info(
            f"Replayed {report.total_beats} beats over {report.chapters_tracked} chapters "
            f"(score {report.overall_dynamism_score})"
        )
        return jsonify({
            "report": report.to_dict(),
            "feedback": feedback,
            "state": tracker.get_state().model_dump(mode="json"),
        })

    @flask_app.route('/api/genre/<tracker_name>/process', methods=['POST'])
    @limiter_instance.limit(lambda: current_app.config["ANALYSIS_RATE_LIMIT"])
    def process_genre(tracker_name: str):
        """
        Apply one chapter extraction to a genre tracker or the whole suite.

        Request Body (JSON):
            - book_id (str, required)
            - chapter_number (int, required)
            - state (dict, optional): State returned by the previous call
            - extraction (dict): Chapter extraction
            - options (dict, optional): central_mystery, procedural_accuracy,
              active_genres (suite), drama_state (romance)

        Returns:
            JSON with delta, state, summary and suggestions
        """
        if tracker_name != "suite" and tracker_name not in GENRES:
            raise NotFoundError("Genre tracker", tracker_name)

        payload = parse_body(GenreProcessRequest)
        extraction = GenreExtraction.from_dict(payload.extraction)
        tracker = _build_tracker(tracker_name, payload)
        result = tracker.process_chapter(payload.chapter_number, extraction)

        response: Dict[str, Any] = {
            "tracker": tracker_name,
            "book_id": payload.book_id,
            "summary": tracker.generate_summary(),
            "suggestions": tracker.generate_suggestions(payload.chapter_number),
            "state": tracker.get_state().to_dict(),
        }
        if tracker_name == "suite":
            response["delta"] = {genre: delta.to_dict() for genre, delta in result.items()}
        else:
            response["delta"] = result.to_dict()
        if tracker_name == "romance":
            response["drama_state"] = tracker.drama.get_state().to_dict()
        if tracker_name == "crime":
            response["procedural_reminders"] = tracker.generate_procedural_reminders()
        return jsonify(response)
