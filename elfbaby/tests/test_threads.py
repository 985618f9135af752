"""Tests for thread captions and thread JSON files."""

import json

import pytest

from elfbaby.threads import MAX_THREAD_LENGTH, generate_keywords, generate_thread_text, load_threads_json


class TestKeywords:
    """Tests for keyword suggestions."""

    def test_long_title_words_then_categories(self):
        assert generate_keywords("The Wooden Toy Train Set", ["Toys", "Kids"]) == (
            "wooden, train, toys, kids"
        )

    def test_at_most_five_unique(self):
        keywords = generate_keywords("Rainbow Stacking Rings Deluxe Edition", ["Rainbow", "Toys", "Gifts"])
        assert keywords == "rainbow, stacking, rings, toys"

    def test_punctuation_split(self):
        assert generate_keywords("Teddy-Bear (Large)", []) == "teddy, bear, large"


class TestThreadText:
    """Tests for templated captions."""

    def test_template(self):
        text = generate_thread_text("Wooden Train", "<p>Hand-made from beech.</p>", ["Toys"])
        assert text == (
            "Wooden Train 🎁\n\n"
            "Hand-made from beech....\n\n"
            "Perfect toys gift for kids! ✨\n\n"
            "#KidsToys #GiftsForKids"
        )

    def test_without_description_or_categories(self):
        assert generate_thread_text("Wooden Train", "", []) == (
            "Wooden Train 🎁\n\n#KidsToys #GiftsForKids"
        )

    def test_capped_length(self):
        text = generate_thread_text("T" * 400, "word " * 100, ["Toys"])
        assert len(text) == MAX_THREAD_LENGTH
        assert text.endswith("...")


class TestLoadThreadsJson:
    """Tests for thread JSON files."""

    def test_list(self, tmp_path):
        path = tmp_path / "threads.json"
        path.write_text(json.dumps([{"text": "Hello"}]))
        assert load_threads_json(path) == [{"text": "Hello"}]

    def test_object(self, tmp_path):
        path = tmp_path / "threads.json"
        path.write_text(json.dumps({"threads": [{"text": "Hello", "keywords": "a, b"}]}))
        assert load_threads_json(path) == [{"text": "Hello", "keywords": "a, b"}]

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "threads.json"
        path.write_text(json.dumps({"text": "Hello"}))
        with pytest.raises(ValueError):
            load_threads_json(path)
