"""
Tests for worker.writer — applying a CatalogRecord to the metadata store.

Uses the FakeStore fixture from conftest, which records operations and keeps
the resulting store state.
"""

import copy
from unittest.mock import AsyncMock, MagicMock

import pytest

from tmdb.models import CatalogRecord
from worker.models import ArtifactRef
from worker.writer import (
    VERIFIED_TAG,
    EnrichmentWriter,
    build_scalar_metadata,
    format_rating,
    plot_key,
)

STORE_REF = "bafkreistoreref"


class TestScalarMetadata:

    def test_movie_fields(self, matrix_payload):
        metadata = build_scalar_metadata(CatalogRecord.from_payload(matrix_payload))

        assert metadata == {
            "tmdbid": "603",
            "imdbid": "tt0133093",
            "originalTitle": "The Matrix",
            "releasedate": "1999-03-30",
            "movieYear": "1999",
            "plot/eng": "A hacker learns the truth about his reality.",
            "rating": "8.2",
        }

    def test_localized_title_written_when_different(self, matrix_payload):
        matrix_payload["title"] = "Matrix"
        metadata = build_scalar_metadata(CatalogRecord.from_payload(matrix_payload), "de")

        assert metadata["title"] == "Matrix"
        assert metadata["originalTitle"] == "The Matrix"
        assert metadata["plot/de"] == matrix_payload["overview"]
        assert "plot/eng" not in metadata

    def test_sparse_record(self):
        metadata = build_scalar_metadata(CatalogRecord.from_payload({"id": 9, "vote_average": 0}))
        assert metadata == {"tmdbid": "9"}

    def test_helpers(self):
        assert plot_key("en") == "plot/eng"
        assert plot_key("fr") == "plot/fr"
        assert format_rating(8.0) == "8"
        assert format_rating(7.25) == "7.25"


class TestEnrichmentWriter:

    @pytest.mark.asyncio
    async def test_operation_order_without_artifacts(self, fake_store, matrix_payload):
        record = CatalogRecord.from_payload(matrix_payload)

        applied = await EnrichmentWriter(fake_store).apply(STORE_REF, record)

        assert [(op, key) for op, _, key, _ in fake_store.ops] == [
            ("merge", None),
            ("add", "genres"),
            ("add", "genres"),
            ("add", "studio"),
            ("add", "tags"),
        ]
        assert applied == 5
        _, sets = fake_store.state(STORE_REF)
        assert sets["tags"] == {VERIFIED_TAG}
        assert sets["genres"] == {"Action", "Science Fiction"}

    @pytest.mark.asyncio
    async def test_artifacts_set_after_sets(self, fake_store, matrix_payload):
        materializer = MagicMock()
        materializer.materialize = AsyncMock(
            side_effect=[
                ArtifactRef(content_id="bafkreiposter", storage_path="plugin/tmdb/p.jpg"),
                ArtifactRef(content_id="bafkreibackdrop", storage_path="plugin/tmdb/b.jpg"),
            ]
        )
        record = CatalogRecord.from_payload(matrix_payload)

        await EnrichmentWriter(fake_store, materializer).apply(STORE_REF, record)

        set_ops = [(key, value) for op, _, key, value in fake_store.ops if op == "set"]
        assert set_ops == [
            ("poster", "bafkreiposter"),
            ("posterPath", "plugin/tmdb/p.jpg"),
            ("backdrop", "bafkreibackdrop"),
            ("backdropPath", "plugin/tmdb/b.jpg"),
        ]
        assert fake_store.ops[-1][2] == "backdropPath"
        first_call = materializer.materialize.await_args_list[0]
        assert first_call.args == ("/matrix-poster.jpg", "poster", "The Matrix", "1999", "603")

    @pytest.mark.asyncio
    async def test_failed_artifact_is_skipped(self, fake_store, sintel_payload):
        materializer = MagicMock()
        materializer.materialize = AsyncMock(return_value=None)

        await EnrichmentWriter(fake_store, materializer).apply(STORE_REF, CatalogRecord.from_payload(sintel_payload))

        # Sintel has a poster but no backdrop
        materializer.materialize.assert_awaited_once()
        assert not [op for op in fake_store.ops if op[0] == "set"]

    @pytest.mark.asyncio
    async def test_store_failures_do_not_raise(self, fake_store, matrix_payload):
        fake_store.fail = {"merge", "add"}

        applied = await EnrichmentWriter(fake_store).apply(STORE_REF, CatalogRecord.from_payload(matrix_payload))

        assert applied == 0
        assert len(fake_store.ops) == 5

    @pytest.mark.asyncio
    async def test_replay_converges(self, fake_store, matrix_payload):
        writer = EnrichmentWriter(fake_store)
        record = CatalogRecord.from_payload(matrix_payload)

        await writer.apply(STORE_REF, record)
        first = copy.deepcopy(fake_store.state(STORE_REF))
        await writer.apply(STORE_REF, record)

        assert fake_store.state(STORE_REF) == first
