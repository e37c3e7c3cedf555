"""Tests del planificador de escenas."""

import json

import pytest

from doc2video.director.planner import (
    ARCHETYPES,
    ScenePlanner,
    calculate_scene_count,
    split_sentences,
)
from doc2video.domain.models import MAX_SCENE_DURATION, MIN_SCENE_DURATION, Mood
from doc2video.errors import EmptyInputError, InputError


def llm_scenes(count: int) -> list:
    return [
        {
            "id": i,
            "title": f"Scene title {i}",
            "summary": "A short summary.",
            "narration": "Some narration for the voiceover.",
            "on_screen_text": "Key idea",
            "visual_keywords": "office, laptop, meeting",
            "mood": "warm",
            "duration_seconds": 8,
        }
        for i in range(1, count + 1)
    ]


class TestSceneCount:
    """Cantidad de escenas según el largo del documento."""

    @pytest.mark.parametrize("words,expected", [
        (0, 5),
        (150, 5),
        (199, 5),
        (200, 5),
        (480, 6),
        (600, 6),
        (1200, 10),
        (2500, 17),
        (100_000, 20),
    ])
    def test_known_values(self, words, expected):
        """Valores de referencia de cada banda."""
        assert calculate_scene_count(words) == expected

    @pytest.mark.parametrize("low,high", [
        (0, 200), (200, 500), (500, 1000), (1000, 2000), (2000, 5000),
    ])
    def test_monotonic_within_band(self, low, high):
        """Dentro de cada banda la cantidad nunca disminuye."""
        counts = [calculate_scene_count(w) for w in range(low, high)]
        assert counts == sorted(counts)

    def test_always_in_bounds(self):
        """Siempre entre 5 y 20."""
        for words in range(0, 6000, 7):
            assert 5 <= calculate_scene_count(words) <= 20


class TestFallbackPlanning:
    """Planificación heurística sin LLM."""

    def test_1200_word_document(self, text_1200_words):
        """1200 palabras sin LLM producen 10 escenas con duraciones válidas."""
        plan = ScenePlanner().plan(text_1200_words)

        assert plan.strategy == "fallback"
        assert plan.word_count == 1200
        assert plan.scene_count == 10
        assert [s.id for s in plan.scenes] == list(range(1, 11))
        for scene in plan.scenes:
            assert MIN_SCENE_DURATION <= scene.duration_seconds <= MAX_SCENE_DURATION
            assert scene.narration
        assert plan.total_duration == sum(s.duration_seconds for s in plan.scenes)

    def test_deterministic(self, text_1200_words):
        """El mismo texto produce el mismo plan."""
        first = ScenePlanner().plan(text_1200_words)
        second = ScenePlanner().plan(text_1200_words)
        assert [s.duration_seconds for s in first.scenes] == [s.duration_seconds for s in second.scenes]
        assert first.scenes == second.scenes

    def test_archetypes_rotate(self, text_1200_words):
        """Los arquetipos se repiten con sufijo numérico."""
        scenes = ScenePlanner().plan(text_1200_words).scenes

        assert scenes[0].title == "Introduction"
        assert scenes[0].on_screen_text == "Welcome"
        assert scenes[3].mood == Mood.INSPIRATIONAL
        assert scenes[5].mood == Mood.WARM
        assert scenes[6].title == "Conclusion"
        assert scenes[7].title == "Introduction 2"
        assert len(ARCHETYPES) == 7

    def test_summary_and_narration(self, text_1200_words):
        """Resumen con prefijo del arquetipo y narración con lead-in."""
        scene = ScenePlanner().plan(text_1200_words).scenes[0]
        assert scene.summary.startswith("This introduction section covers: The quarterly report")
        assert scene.narration.startswith("Welcome to this presentation. The quarterly")
        assert scene.narration[-1] in ".!?"

    def test_short_text_uses_all_sentences(self):
        """Sin oraciones largas se usan todas las no vacías."""
        assert split_sentences("Hi. Yes! Ok?") == ["Hi", "Yes", "Ok"]
        plan = ScenePlanner().plan("Hi. Yes! Ok?")
        assert plan.scene_count == 5
        assert all(s.narration for s in plan.scenes)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
    def test_empty_input(self, text):
        """Texto vacío es un error de entrada."""
        with pytest.raises(EmptyInputError):
            ScenePlanner().plan(text)

    def test_empty_input_is_input_error(self):
        with pytest.raises(InputError):
            ScenePlanner().plan("   ")


class TestLLMPlanning:
    """Planificación con una capacidad de generación inyectada."""

    def test_llm_success(self):
        """La respuesta del LLM (con fences) se usa tal cual."""
        prompts = []

        def generate(prompt: str) -> str:
            prompts.append(prompt)
            return "```json\n" + json.dumps(llm_scenes(5)) + "\n```"

        plan = ScenePlanner(generate=generate).plan("A short document about quarterly growth.")

        assert plan.strategy == "llm"
        assert plan.scene_count == 5
        assert plan.scenes[0].mood == Mood.WARM
        assert "exactly 5" in prompts[0]
        assert "quarterly growth" in prompts[0]

    def test_llm_exception_falls_back(self, text_1200_words):
        """Si el LLM lanza, se usa la heurística."""
        def generate(prompt: str) -> str:
            raise RuntimeError("connection reset")

        plan = ScenePlanner(generate=generate).plan(text_1200_words)
        assert plan.strategy == "fallback"
        assert plan.scene_count == 10

    def test_llm_garbage_falls_back(self, text_1200_words):
        """Una respuesta sin JSON válido también activa la heurística."""
        plan = ScenePlanner(generate=lambda prompt: "I cannot help with that").plan(text_1200_words)
        assert plan.strategy == "fallback"

    def test_llm_empty_scene_list_falls_back(self, text_1200_words):
        plan = ScenePlanner(generate=lambda prompt: '{"scenes": []}').plan(text_1200_words)
        assert plan.strategy == "fallback"
        assert plan.scene_count == 10

    def test_prompt_template_from_file(self, tmp_path):
        """El template se puede sobreescribir desde YAML."""
        prompts_file = tmp_path / "prompts.yaml"
        prompts_file.write_text(
            "scene_template: 'Make {target_scenes} scenes from: {source_content}'\n",
            encoding="utf-8",
        )
        planner = ScenePlanner(prompts_path=str(prompts_file))
        assert planner.build_prompt("hello", 7) == "Make 7 scenes from: hello"

    def test_missing_prompt_file_uses_default(self, tmp_path):
        planner = ScenePlanner(prompts_path=str(tmp_path / "missing.yaml"))
        assert "RESPOND WITH ONLY THE JSON ARRAY" in planner.build_prompt("x", 5)
