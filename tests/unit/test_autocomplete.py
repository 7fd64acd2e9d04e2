"""
Unit tests for tag autocomplete across adapters and through the executor.
"""

import re

import pytest
from aioresponses import aioresponses

from boorucore.errors import DecodeError
from boorucore.models import TagCategory, TagSuggestion
from boorucore.protocols import Autocomplete
from boorucore.sites import DanbooruAdapter, GelbooruAdapter, Rule34Adapter, SafebooruAdapter

SAFEBOORU_AUTOCOMPLETE = re.compile(r"^https://safebooru\.org/autocomplete\.php.*$")


@pytest.mark.unit
class TestTagCategory:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (0, TagCategory.GENERAL),
            (1, TagCategory.ARTIST),
            (3, TagCategory.COPYRIGHT),
            (4, TagCategory.CHARACTER),
            (5, TagCategory.META),
            ("4", TagCategory.CHARACTER),
            ("tag", TagCategory.GENERAL),
            ("Series", TagCategory.COPYRIGHT),
            ("metadata", TagCategory.META),
        ],
    )
    def test_from_raw(self, raw, expected):
        assert TagCategory.from_raw(raw) is expected

    @pytest.mark.parametrize("raw", [None, 2, "deprecated", True])
    def test_unknown_is_none(self, raw):
        assert TagCategory.from_raw(raw) is None

    def test_suggestion_parses_category(self):
        suggestion = TagSuggestion(name="hatsune_miku", label="hatsune miku", category="character")
        assert suggestion.category is TagCategory.CHARACTER


@pytest.mark.unit
class TestAdapterSuggest:
    @pytest.mark.asyncio
    async def test_bundled_adapters_support_autocomplete(self, http_client):
        for cls in (DanbooruAdapter, GelbooruAdapter, SafebooruAdapter, Rule34Adapter):
            assert isinstance(cls(http_client), Autocomplete)

    @pytest.mark.asyncio
    async def test_danbooru(self, http_client):
        captured = []

        def record(url, **kwargs):
            captured.append(dict(url.query))

        payload = [
            {"type": "tag-word", "label": "cat ears", "value": "cat_ears", "category": 0, "post_count": 177448},
            {"type": "tag-word", "label": "cat girl", "value": "cat_girl", "category": 0, "post_count": 24000},
        ]
        with aioresponses() as m:
            m.get(re.compile(r"^https://danbooru\.donmai\.us/autocomplete\.json.*$"), payload=payload, callback=record)
            suggestions = await DanbooruAdapter(http_client).suggest("cat", limit=2)

        assert captured == [{"search[query]": "cat", "search[type]": "tag_query", "limit": "2"}]
        assert [s.name for s in suggestions] == ["cat_ears", "cat_girl"]
        assert suggestions[0].post_count == 177448
        assert suggestions[0].category is TagCategory.GENERAL

    @pytest.mark.asyncio
    async def test_gelbooru_falls_back_to_label_count(self, http_client):
        payload = [{"label": "cat_ears (91234)", "value": "cat_ears", "category": "tag"}]
        with aioresponses() as m:
            m.get(re.compile(r"^https://gelbooru\.com/index\.php.*$"), payload=payload)
            suggestions = await GelbooruAdapter(http_client).suggest("cat")
        assert suggestions == [
            TagSuggestion(name="cat_ears", label="cat_ears (91234)", post_count=91234, category=TagCategory.GENERAL)
        ]

    @pytest.mark.asyncio
    async def test_safebooru_truncates_to_limit(self, http_client):
        payload = [{"label": f"tag_{i} ({i})", "value": f"tag_{i}"} for i in range(1, 6)]
        with aioresponses() as m:
            m.get(SAFEBOORU_AUTOCOMPLETE, payload=payload)
            suggestions = await SafebooruAdapter(http_client).suggest("tag", limit=3)
        assert [s.post_count for s in suggestions] == [1, 2, 3]
        assert all(s.category is None for s in suggestions)

    @pytest.mark.asyncio
    async def test_rule34(self, http_client):
        with aioresponses() as m:
            m.get(
                re.compile(r"^https://api\.rule34\.xxx/autocomplete\.php.*$"),
                payload=[{"label": "animated (400000)", "value": "animated"}],
            )
            suggestions = await Rule34Adapter(http_client).suggest("anim")
        assert suggestions[0].name == "animated"
        assert suggestions[0].post_count == 400000

    @pytest.mark.asyncio
    async def test_empty_body_is_no_suggestions(self, http_client):
        with aioresponses() as m:
            m.get(SAFEBOORU_AUTOCOMPLETE, payload=[])
            assert await SafebooruAdapter(http_client).suggest("zzz") == []

    @pytest.mark.asyncio
    async def test_malformed_items_are_decode_errors(self, http_client):
        with aioresponses() as m:
            m.get(SAFEBOORU_AUTOCOMPLETE, payload=[{"unexpected": "shape"}])
            with pytest.raises(DecodeError):
                await SafebooruAdapter(http_client).suggest("cat")


@pytest.mark.unit
class TestExecutorSuggest:
    @pytest.mark.asyncio
    async def test_suggestions_are_cached(self, http_client, executor):
        adapter = SafebooruAdapter(http_client)
        with aioresponses() as m:
            m.get(SAFEBOORU_AUTOCOMPLETE, payload=[{"label": "cat_ears (5)", "value": "cat_ears"}])
            first = await executor.execute_suggest("Cat", 5, adapter)
            second = await executor.execute_suggest("cat", 5, adapter)
        assert first == second
        assert len(m.requests) == 1
