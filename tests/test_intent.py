from __future__ import annotations

import pytest

from hanashi.nlp.intent import extract_weather_location, has_weather_intent


@pytest.mark.parametrize(
    "text, expected",
    [
        ("What's the weather in Paris?", "Paris"),
        ("forecast for New York.", "New York"),
        ("Is it cold at Oslo", "Oslo"),
        ("東京の天気は？", "東京"),
        ("大阪は雨ですか", "大阪"),
        ("札幌天気", "札幌"),
        ("天気は名古屋？", "名古屋"),
        ("Is it raining in London?", "London"),
        ("What are the temperatures in Berlin?", "Berlin"),
        ("Is it snowing in Oslo?", "Oslo"),
    ],
)
def test_extracts_location(text: str, expected: str) -> None:
    assert extract_weather_location(text) == expected


def test_no_weather_keyword_short_circuits() -> None:
    assert extract_weather_location("I like Paris") is None
    assert extract_weather_location("Meet me in London") is None


def test_keyword_without_location_returns_none() -> None:
    assert extract_weather_location("How is the weather?") is None


def test_gate_uses_word_boundaries_for_english() -> None:
    assert not has_weather_intent("Send me that photo in Rome")
    assert has_weather_intent("hot in Rome")
    assert has_weather_intent("明日は雪")


def test_empty_text() -> None:
    assert extract_weather_location("") is None


def test_gate_accepts_inflected_english_keywords() -> None:
    assert has_weather_intent("Is it raining?")
    assert has_weather_intent("cloudy skies and strong winds")
    assert not has_weather_intent("I scold him")
    assert not has_weather_intent("my first attempt")
