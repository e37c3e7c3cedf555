"""Tests del parser y validador de escenas generadas."""

import json
import math

import pytest

from doc2video.director.parser import SceneResponseParser
from doc2video.domain.models import Mood
from doc2video.errors import GenerationError, NoScenesProducedError
from doc2video.llm.validator import SceneValidator, coerce_duration


def raw_scene(**overrides) -> dict:
    scene = {
        "id": 1,
        "title": "Opening",
        "summary": "Why this matters.",
        "narration": "Let's start with the big picture.",
        "on_screen_text": "Big picture",
        "visual_keywords": "city skyline, office, people walking",
        "mood": "corporate",
        "duration_seconds": 9,
    }
    scene.update(overrides)
    return scene


class TestCoerceDuration:
    """Coerción de duration_seconds."""

    @pytest.mark.parametrize("value,expected", [
        (30, 10),
        (5, 10),
        (16, 10),
        (6, 6),
        (15, 15),
        ("12", 12),
        ("12 seconds", 12),
        (12.4, 12),
        (True, 10),
        (None, 10),
        ("abc", 10),
        (math.inf, 10),
        (math.nan, 10),
    ])
    def test_values(self, value, expected):
        assert coerce_duration(value) == expected


class TestSceneValidator:
    """Normalización campo a campo."""

    def test_out_of_range_duration_becomes_default(self):
        """Una escena con 30s queda en 10s."""
        result = SceneValidator().validate([raw_scene(duration_seconds=30)])
        assert result.is_valid
        assert result.scenes[0].duration_seconds == 10
        assert result.warnings

    def test_missing_fields_get_named_fallbacks(self):
        result = SceneValidator().validate([{}])
        scene = result.scenes[0]
        assert scene.id == 1
        assert scene.title == "Scene 1"
        assert scene.summary == "Scene description"
        assert scene.narration == "Scene narration text"
        assert scene.on_screen_text == "Text"
        assert scene.visual_keywords == "office, business, professional"
        assert scene.mood == Mood.INFORMATIVE
        assert scene.duration_seconds == 10

    def test_non_object_element_uses_defaults(self):
        result = SceneValidator().validate(["oops"])
        assert result.scenes[0].title == "Scene 1"
        assert result.issues

    def test_unknown_mood_defaults_to_informative(self):
        result = SceneValidator().validate([raw_scene(mood="happy")])
        assert result.scenes[0].mood == Mood.INFORMATIVE

    def test_strings_are_truncated(self):
        result = SceneValidator().validate([raw_scene(title="x" * 80, narration="y" * 900)])
        assert len(result.scenes[0].title) == 50
        assert len(result.scenes[0].narration) == 500

    def test_on_screen_text_limited_to_six_words(self):
        result = SceneValidator().validate([raw_scene(on_screen_text="one two three four five six seven eight")])
        assert result.scenes[0].on_screen_text == "one two three four five six"

    def test_duplicate_ids_are_renumbered(self):
        result = SceneValidator().validate([raw_scene(id=1), raw_scene(id=1), raw_scene(id="x")])
        assert [s.id for s in result.scenes] == [1, 2, 3]

    def test_caps_generated_scenes(self):
        """Se conservan como máximo max_scenes escenas."""
        items = [raw_scene(id=i) for i in range(1, 26)]
        assert len(SceneValidator().validate(items).scenes) == 20
        assert len(SceneValidator(max_scenes=10).validate(items).scenes) == 10

    def test_empty_list_fails(self):
        result = SceneValidator().validate([])
        assert not result
        assert isinstance(result.error, NoScenesProducedError)
        with pytest.raises(NoScenesProducedError):
            result.unwrap()

    def test_non_list_fails(self):
        result = SceneValidator().validate("not a list")
        assert isinstance(result.error, GenerationError)


class TestSceneResponseParser:
    """Extracción del JSON de la respuesta del LLM."""

    def test_plain_array(self):
        result = SceneResponseParser().parse(json.dumps([raw_scene(), raw_scene(id=2)]))
        assert result.is_valid
        assert len(result.scenes) == 2

    def test_code_fences_are_stripped(self):
        raw = "```json\n" + json.dumps([raw_scene()]) + "\n```"
        result = SceneResponseParser().parse(raw)
        assert result.scenes[0].title == "Opening"

    def test_scenes_wrapper(self):
        result = SceneResponseParser().parse(json.dumps({"scenes": [raw_scene()]}))
        assert len(result.scenes) == 1

    def test_single_object(self):
        result = SceneResponseParser().parse(json.dumps(raw_scene()))
        assert len(result.scenes) == 1

    def test_array_inside_prose(self):
        raw = "Sure! Here are your scenes: " + json.dumps([raw_scene()]) + " Hope it helps."
        result = SceneResponseParser().parse(raw)
        assert result.is_valid

    def test_already_decoded_input(self):
        assert len(SceneResponseParser().parse([raw_scene()]).scenes) == 1
        assert len(SceneResponseParser().parse({"scenes": [raw_scene()]}).scenes) == 1

    def test_empty_scenes_wrapper_fails(self):
        result = SceneResponseParser().parse('{"scenes": []}')
        assert isinstance(result.error, NoScenesProducedError)

    def test_garbage_fails_without_raising(self):
        result = SceneResponseParser().parse("definitely not json")
        assert not result.is_valid
        assert isinstance(result.error, GenerationError)

    def test_scalar_json_fails(self):
        result = SceneResponseParser().parse("42")
        assert isinstance(result.error, GenerationError)
