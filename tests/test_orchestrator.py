"""Tests de integración del orquestador y la CLI (sin red)."""

import json

import pytest

from doc2video.config import load_settings
from doc2video.domain.models import AssetOrigin
from doc2video.errors import EmptyInputError
from doc2video.main import main
from doc2video.orchestrator import DocumentVideoOrchestrator

from conftest import FakeSource, make_candidate


@pytest.fixture()
def settings(tmp_path):
    return load_settings(
        config_path=str(tmp_path / "none.yaml"),
        assets_dir=str(tmp_path / "assets"),
        library_dir=str(tmp_path / "library"),
        output_dir=str(tmp_path / "output"),
    )


@pytest.fixture()
def make_orchestrator(settings, embedder):
    created = []

    def factory(**kwargs):
        kwargs.setdefault("use_llm", False)
        kwargs.setdefault("embedder", embedder)
        kwargs.setdefault("secondary_source", FakeSource("pixabay", configured=False))
        orchestrator = DocumentVideoOrchestrator(settings, **kwargs)
        created.append(orchestrator)
        return orchestrator

    yield factory
    for orchestrator in created:
        orchestrator.close()


@pytest.fixture()
def document(tmp_path, text_1200_words):
    path = tmp_path / "report.txt"
    path.write_text(text_1200_words, encoding="utf-8")
    return path


class TestProduce:

    def test_every_scene_gets_an_asset(self, make_orchestrator, text_1200_words):
        primary = FakeSource("pexels", [make_candidate()])
        orchestrator = make_orchestrator(primary_source=primary)

        result = orchestrator.produce(text_1200_words)

        assert result.plan.strategy == "fallback"
        assert len(result.assignments) == 10
        assert result.assets_found == 10
        assert result.scheduler_stats["completed"] == 10
        assert result.scheduler_stats["failed"] == 0
        for assignment in result.assignments:
            assert assignment.asset.source in (AssetOrigin.PRIMARY, AssetOrigin.LIBRARY)
            assert assignment.job_id
        assert [a.scene.id for a in result.assignments] == list(range(1, 11))
        assert result.total_duration == sum(a.scene.duration_seconds for a in result.assignments)
        assert {"planning", "visual_queries", "assets", "total"} <= set(result.timings)

    def test_without_sources_everything_falls_back(self, make_orchestrator, text_1200_words):
        orchestrator = make_orchestrator(primary_source=FakeSource("pexels", configured=False))

        result = orchestrator.produce(text_1200_words)

        assert result.assets_found == 0
        assert all(a.asset.source == AssetOrigin.FALLBACK for a in result.assignments)
        assert all(a.asset.error is None for a in result.assignments)

    def test_empty_text(self, make_orchestrator):
        orchestrator = make_orchestrator(primary_source=FakeSource("pexels"))
        with pytest.raises(EmptyInputError):
            orchestrator.produce("   \n ")

    def test_injected_generation(self, make_orchestrator):
        def generate(prompt):
            return json.dumps({"scenes": [
                {
                    "id": i,
                    "title": f"Scene {i}",
                    "summary": "Summary.",
                    "narration": "Narration.",
                    "on_screen_text": "Idea",
                    "visual_keywords": "office, laptop",
                    "mood": "corporate",
                    "duration_seconds": 9,
                }
                for i in range(1, 6)
            ]})

        orchestrator = make_orchestrator(
            use_llm=True,
            generate=generate,
            primary_source=FakeSource("pexels", configured=False),
        )
        result = orchestrator.produce("A short memo about the new office layout.")

        assert result.plan.strategy == "llm"
        assert result.plan.scene_count == 5
        assert result.total_duration == 45


class TestFiles:

    def test_produce_from_file_and_save(self, make_orchestrator, document, tmp_path):
        orchestrator = make_orchestrator(primary_source=FakeSource("pexels", [make_candidate()]))

        result = orchestrator.produce_from_file(document)
        path = orchestrator.save_result(result)

        assert result.document == str(document)
        assert path.parent == tmp_path / "output"
        assert path.name.startswith("processing_log_report_")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert len(data["assignments"]) == 10
        assert data["total_duration"] == result.total_duration
        assert data["assets_found"] == 10

    def test_batch_continues_after_failure(self, make_orchestrator, document, tmp_path):
        orchestrator = make_orchestrator(primary_source=FakeSource("pexels", configured=False))

        outcomes = orchestrator.produce_batch([tmp_path / "missing.txt", document])

        assert outcomes[0].result is None
        assert "no encontrado" in outcomes[0].error
        assert outcomes[1].error is None
        assert outcomes[1].result.plan.scene_count == 10


class TestCli:

    @pytest.fixture()
    def cli_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DOC2VIDEO_ASSETS_DIR", str(tmp_path / "assets"))
        monkeypatch.setenv("DOC2VIDEO_LIBRARY_DIR", str(tmp_path / "library"))
        return ["--no-llm", "--config", str(tmp_path / "none.yaml"), "--output", str(tmp_path / "out")]

    def test_file_conversion(self, cli_env, document, tmp_path):
        assert main([str(document), "--workers", "2"] + cli_env) == 0
        assert len(list((tmp_path / "out").glob("processing_log_report_*.json"))) == 1

    def test_literal_text(self, cli_env, tmp_path):
        assert main(["Our", "quarterly", "report", "shows", "growth.", "--text"] + cli_env) == 0
        assert len(list((tmp_path / "out").glob("processing_log_text_*.json"))) == 1

    def test_empty_text_fails(self, cli_env):
        assert main(["  ", "--text"] + cli_env) == 1

    def test_missing_file_fails(self, cli_env, tmp_path):
        assert main([str(tmp_path / "missing.txt")] + cli_env) == 1
