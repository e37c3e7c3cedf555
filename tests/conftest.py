"""Fixtures compartidas para los tests de doc2video."""

from typing import Iterable, List, Optional

import httpx
import pytest

from doc2video.config import _ENV_MAP, reset_settings
from doc2video.domain.models import AssetLibraryEntry, Mood, Scene, VideoCandidate, VisualQueryBundle
from doc2video.infrastructure.asset_library import AssetLibrary
from doc2video.infrastructure.sources import VideoSource
from doc2video.llm.embeddings import HashEmbeddingProvider
from doc2video.utils.backoff import RateLimiter
from doc2video.utils.cache import AssetStore

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video-payload"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Evita que las credenciales o ajustes reales se filtren a los tests."""
    for env_name in _ENV_MAP:
        monkeypatch.delenv(env_name, raising=False)
    reset_settings()
    yield
    reset_settings()


def make_candidate(
    provider: str = "pexels",
    video_id: str = "1",
    duration: float = 10.0,
    width: int = 1920,
    height: int = 1080,
) -> VideoCandidate:
    return VideoCandidate(
        provider=provider,
        video_id=video_id,
        page_url=f"https://{provider}.example/video/{video_id}",
        download_url=f"https://cdn.{provider}.example/{video_id}.mp4",
        duration=duration,
        width=width,
        height=height,
    )


class FakeSource(VideoSource):
    """Fuente en memoria: búsquedas configurables y descargas vía MockTransport."""

    def __init__(
        self,
        name: str,
        candidates: Optional[List[VideoCandidate]] = None,
        error: Optional[Exception] = None,
        configured: bool = True,
        only_queries: Optional[Iterable[str]] = None,
        download_status: int = 200,
    ):
        self.name = name
        self.candidates = candidates or []
        self.error = error
        self.only_queries = set(only_queries) if only_queries is not None else None
        self.download_status = download_status
        self.searches: List[str] = []
        self.downloads: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.downloads.append(str(request.url))
            return httpx.Response(self.download_status, content=VIDEO_BYTES)

        super().__init__(
            api_key="test-key" if configured else None,
            client=httpx.Client(transport=httpx.MockTransport(handler)),
            rate_limiter=RateLimiter(),
        )

    def search(self, query: str, target_duration: float) -> List[VideoCandidate]:
        self.searches.append(query)
        if self.error is not None:
            raise self.error
        if self.only_queries is not None and query not in self.only_queries:
            return []
        return list(self.candidates)


@pytest.fixture()
def embedder():
    return HashEmbeddingProvider(dimensions=5)


@pytest.fixture()
def store(tmp_path):
    asset_store = AssetStore(str(tmp_path / "library"))
    yield asset_store
    asset_store.close()


@pytest.fixture()
def library(store, embedder):
    return AssetLibrary(store, embedder, similarity_threshold=0.8)


@pytest.fixture()
def scene():
    return Scene(
        id=1,
        title="Team Growth",
        summary="The team grew steadily across every regional office.",
        narration="Our team grew steadily this year.",
        on_screen_text="Growth",
        visual_keywords="office desk, laptop typing, team meeting",
        mood=Mood.CORPORATE,
        duration_seconds=10,
    )


@pytest.fixture()
def bundle():
    return VisualQueryBundle(
        refined_keywords=["office", "desk", "laptop"],
        primary_query="business meeting",
        secondary_query="team work",
        backup_queries=["office meeting", "corporate presentation"],
        matched_pattern_ids=["business_professional"],
    )


@pytest.fixture()
def text_1200_words():
    """Documento de exactamente 1200 palabras (120 oraciones de 10 palabras)."""
    sentence = "The quarterly report shows steady growth across every regional office."
    assert len(sentence.split()) == 10
    return " ".join([sentence] * 120)


def make_entry(entry_id, local_path, embedding, source="pexels", usage_count=1) -> AssetLibraryEntry:
    return AssetLibraryEntry(
        id=entry_id,
        source_url=f"https://cdn.example/{entry_id}.mp4",
        local_path=str(local_path),
        origin_query="business meeting",
        source=source,
        duration_seconds=10.0,
        width=1920,
        height=1080,
        keywords=["business", "meeting"],
        embedding=embedding,
        usage_count=usage_count,
    )
