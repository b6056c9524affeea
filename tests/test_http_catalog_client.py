"""Tests for HttpCatalogClient payload conversion (no network)."""

import pytest

from catalog import HttpCatalogClient
from catalog.http_client import video_id_from_identity
from models import AcquisitionOutcome
from utils.exceptions import CatalogError


def test_video_id_from_identity():
    assert video_id_from_identity("https://www.viory.video/en/videos/abc123") == "abc123"
    assert video_id_from_identity("https://www.viory.video/en/videos/abc123/") == "abc123"
    assert video_id_from_identity("xyz") == "xyz"


def test_video_id_from_empty_identity_raises():
    with pytest.raises(CatalogError):
        video_id_from_identity("https://host/")


def test_convert_search_payload_skips_items_without_url():
    data = {
        "items": [
            {"url": "https://c/v/1", "title": " Tanks roll in ", "thumbnail": "https://img/1.jpg"},
            {"title": "no url"},
            "garbage",
        ]
    }

    candidates = HttpCatalogClient._convert_search_payload(data, "tanks")

    assert len(candidates) == 1
    assert candidates[0].title == "Tanks roll in"
    assert candidates[0].thumbnail_ref == "https://img/1.jpg"
    assert candidates[0].source_query == "tanks"


def test_convert_detail_splits_tag_string():
    metadata = HttpCatalogClient._convert_detail({
        "title": "Flood aftermath",
        "shot_list": "1. Aerial of flooded streets",
        "tags": "flood, rescue ,",
        "duration": 95,
        "screenshot": "https://img/s.jpg",
    })

    assert metadata.tags == ["flood", "rescue"]
    assert metadata.duration == "95"
    assert metadata.screenshot_ref == "https://img/s.jpg"
    assert not metadata.is_empty


def test_convert_detail_non_dict_is_empty():
    assert HttpCatalogClient._convert_detail(None).is_empty


def test_convert_acquire_statuses():
    ready = HttpCatalogClient._convert_acquire(
        {"status": "ready", "asset_url": "https://cdn/clip.mp4", "mandatory_credit": "Credit: Agency"}
    )
    deferred = HttpCatalogClient._convert_acquire({"status": "Processing"})

    assert ready.status == AcquisitionOutcome.READY
    assert ready.asset_handle == "https://cdn/clip.mp4"
    assert ready.attribution_text == "Credit: Agency"
    assert deferred.status == AcquisitionOutcome.DEFERRED


def test_convert_acquire_ready_without_asset_is_an_error():
    with pytest.raises(CatalogError):
        HttpCatalogClient._convert_acquire({"status": "ready"})
