# SPDX-License-Identifier: MIT
"""Tests for the Wikimedia Commons client."""

import pytest

from heritage_pipeline.enrichment.commons import COMMONS_API_URL, CommonsClient
from heritage_pipeline.enrichment.models import ImageInfo


@pytest.fixture
def client(stub_fetch):
    return CommonsClient(fetch=stub_fetch, gallery_limit=5)


class TestResolveImageInfo:
    """Test file name -> URL + license resolution."""

    def test_prefers_license_short_name(self, client, stub_fetch, imageinfo_payload):
        stub_fetch.add(COMMONS_API_URL, imageinfo_payload(
            "https://upload.wikimedia.org/a.jpg",
            license_short="CC BY 2.0",
            license_url="https://creativecommons.org/licenses/by/2.0",
        ))
        assert client.resolve_image_info("A.jpg") == ImageInfo("https://upload.wikimedia.org/a.jpg", "CC BY 2.0")

    def test_falls_back_to_license_url(self, client, stub_fetch, imageinfo_payload):
        stub_fetch.add(COMMONS_API_URL, imageinfo_payload(
            "https://upload.wikimedia.org/a.jpg",
            license_url="https://creativecommons.org/licenses/by/2.0",
        ))
        info = client.resolve_image_info("A.jpg")
        assert info.license == "https://creativecommons.org/licenses/by/2.0"

    def test_no_license_metadata(self, client, stub_fetch, imageinfo_payload):
        stub_fetch.add(COMMONS_API_URL, imageinfo_payload("https://upload.wikimedia.org/a.jpg"))
        assert client.resolve_image_info("A.jpg").license == ""

    def test_request_uses_file_title(self, client, stub_fetch):
        client.resolve_image_info("Great Wall of China.jpg")
        url, params = stub_fetch.calls[0]
        assert params["titles"] == "File:Great_Wall_of_China.jpg"
        assert params["iiprop"] == "url|extmetadata"

    def test_missing_file(self, client, stub_fetch):
        stub_fetch.add(COMMONS_API_URL, {"query": {"pages": [{"title": "File:Gone.jpg", "missing": True}]}})
        assert client.resolve_image_info("Gone.jpg") is None

    def test_legacy_page_map(self, client, stub_fetch):
        stub_fetch.add(COMMONS_API_URL, {"query": {"pages": {
            "-1": {"title": "File:Gone.jpg", "missing": ""},
            "123": {"title": "File:A.jpg", "imageinfo": [{"url": "https://upload.wikimedia.org/a.jpg"}]},
        }}})
        assert client.resolve_image_info("A.jpg").url == "https://upload.wikimedia.org/a.jpg"

    def test_malformed_metadata_field_keeps_license(self, client, stub_fetch, imageinfo_payload):
        payload = imageinfo_payload("https://upload.wikimedia.org/a.jpg", license_short="CC0")
        payload["query"]["pages"][0]["imageinfo"][0]["extmetadata"]["Artist"] = "not an object"
        stub_fetch.add(COMMONS_API_URL, payload)

        assert client.resolve_image_info("A.jpg") == ImageInfo("https://upload.wikimedia.org/a.jpg", "CC0")

    def test_failed_fetch(self, client):
        assert client.resolve_image_info("A.jpg") is None


class TestListCategoryImages:
    """Test gallery listing."""

    def test_urls_in_api_order(self, client, stub_fetch, category_payload):
        stub_fetch.add(COMMONS_API_URL, category_payload(
            "https://upload.wikimedia.org/3.jpg",
            "https://upload.wikimedia.org/1.jpg",
            "https://upload.wikimedia.org/2.jpg",
        ), generator="categorymembers")

        assert client.list_category_images("Colosseum") == [
            "https://upload.wikimedia.org/3.jpg",
            "https://upload.wikimedia.org/1.jpg",
            "https://upload.wikimedia.org/2.jpg",
        ]

    def test_capped_at_gallery_limit(self, stub_fetch, category_payload):
        urls = [f"https://upload.wikimedia.org/{i}.jpg" for i in range(8)]
        stub_fetch.add(COMMONS_API_URL, category_payload(*urls), generator="categorymembers")

        assert CommonsClient(fetch=stub_fetch, gallery_limit=5).list_category_images("Big") == urls[:5]

    def test_malformed_page_is_skipped(self, client, stub_fetch, category_payload):
        payload = category_payload("https://upload.wikimedia.org/1.jpg", "https://upload.wikimedia.org/2.jpg")
        payload["query"]["pages"].insert(1, {"ns": 6, "title": "File:Broken.jpg", "imageinfo": "bad"})
        stub_fetch.add(COMMONS_API_URL, payload, generator="categorymembers")

        assert client.list_category_images("Colosseum") == [
            "https://upload.wikimedia.org/1.jpg",
            "https://upload.wikimedia.org/2.jpg",
        ]

    def test_request_params(self, client, stub_fetch):
        client.list_category_images("Historic Centre of Rome")
        url, params = stub_fetch.calls[0]
        assert params["gcmtitle"] == "Category:Historic_Centre_of_Rome"
        assert params["gcmtype"] == "file"
        assert params["gcmlimit"] == 5

    @pytest.mark.parametrize("category", ["", "   "])
    def test_blank_category_makes_no_request(self, client, stub_fetch, category):
        assert client.list_category_images(category) == []
        assert stub_fetch.calls == []

    def test_empty_category(self, client, stub_fetch):
        stub_fetch.add(COMMONS_API_URL, {"batchcomplete": True}, generator="categorymembers")
        assert client.list_category_images("Empty") == []

    def test_failed_fetch(self, client):
        assert client.list_category_images("Colosseum") == []
