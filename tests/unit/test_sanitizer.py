"""Tests for imagerelay.core.sanitizer — caller-facing record shaping."""

from __future__ import annotations

import pytest

from imagerelay.core.sanitizer import (
    is_terminal,
    sanitize_generation,
    sanitize_generations,
    summarize_status,
)

RECORD = {
    "id": "gen-1",
    "modelId": "b24e16ff-06e3-43eb-8d33-4416c2d75876",
    "prompt": "a lighthouse at dusk",
    "status": "COMPLETE",
    "createdAt": "2024-05-01T10:00:00.000Z",
    "generated_images": [{"id": "img-1", "url": "https://cdn.test/img-1.jpg"}],
}


class TestSanitizeGeneration:
    def test_backend_id_removed(self):
        clean = sanitize_generation(RECORD)
        assert "modelId" not in clean

    def test_other_fields_unchanged(self):
        clean = sanitize_generation(RECORD)
        expected = {k: v for k, v in RECORD.items() if k != "modelId"}
        assert clean == expected

    def test_input_not_mutated(self):
        sanitize_generation(RECORD)
        assert "modelId" in RECORD

    def test_record_without_backend_id(self):
        assert sanitize_generation({"id": "g"}) == {"id": "g"}

    def test_list(self):
        clean = sanitize_generations([RECORD, {**RECORD, "id": "gen-2"}])
        assert [g["id"] for g in clean] == ["gen-1", "gen-2"]
        assert all("modelId" not in g for g in clean)


class TestSummarizeStatus:
    def test_summary_fields(self):
        generation = {
            **RECORD,
            "generated_images": [
                {
                    "id": "img-1",
                    "url": "https://cdn.test/img-1.jpg",
                    "nsfw": False,
                    "likeCount": 3,
                    "generationId": "gen-1",
                }
            ],
        }
        summary = summarize_status(generation)
        assert summary == {
            "status": "COMPLETE",
            "images": [
                {"id": "img-1", "url": "https://cdn.test/img-1.jpg", "nsfw": False, "likeCount": 3}
            ],
            "prompt": "a lighthouse at dusk",
            "createdAt": "2024-05-01T10:00:00.000Z",
        }
        assert "modelId" not in summary

    def test_absent_image_fields_are_not_added(self):
        image = {"id": "img", "url": "https://cdn.test/a.png"}
        summary = summarize_status({"generated_images": [image]})
        assert summary["images"] == [image]

    def test_missing_status_is_unknown(self):
        assert summarize_status({})["status"] == "UNKNOWN"
        assert summarize_status({})["images"] == []

    def test_unrecognised_status_passes_through(self):
        assert summarize_status({"status": "QUEUED_FOR_GPU"})["status"] == "QUEUED_FOR_GPU"


class TestTerminalStatus:
    @pytest.mark.parametrize("status", ["COMPLETE", "FAILED"])
    def test_terminal(self, status):
        assert is_terminal(status) is True

    @pytest.mark.parametrize("status", ["PENDING", "STARTED", "STARTING", "UNKNOWN", None, "complete"])
    def test_not_terminal(self, status):
        assert is_terminal(status) is False
