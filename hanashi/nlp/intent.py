"""
Weather intent detection for outgoing chat text (English + Japanese).

extract_weather_location() is a cheap keyword gate followed by a few
ordered patterns; the first match wins. Nothing locale-specific runs unless
the gate passes.
"""
from __future__ import annotations

import re
from typing import Optional

_JA_KEYWORDS = ("天気", "気温", "温度", "予報", "雨", "晴れ", "曇り", "風速", "風", "湿度", "暑い", "寒い", "雪")
_EN_STEMS = (
    "weather", "temperature", "forecast", "climate", "rain", "sunny", "cloud",
    "degree", "wind", "snow", "humid",
)
# short words that are common substrings ("photo", "scold", "attempt")
_EN_EXACT = ("temp", "hot", "cold")

_WEATHER_GATE = re.compile(
    r"\b(?:" + "|".join(_EN_STEMS) + r")\w*|\b(?:" + "|".join(_EN_EXACT) + r")\b|" + "|".join(_JA_KEYWORDS),
    re.IGNORECASE,
)

# Hiragana, Katakana (incl. the long-vowel mark), CJK ideographs, 々, ASCII letters
_JA_RUN = r"[ぁ-ゟ゠-ヿ㐀-䶿一-鿿々A-Za-z]"
_JA_PLACE_KEYWORD = r"(?:天気|気温|予報|雨|晴れ|曇り)"

# "in/at/for" + one or two words of letters
_EN_LOCATION = re.compile(
    r"\b(?:in|at|for)\s+((?:[^\W\d_]|[.'-])+(?:\s+(?:[^\W\d_]|[.'-])+)?)",
    re.IGNORECASE,
)
# 東京の天気 / 大阪は雨
_JA_LOCATION_FIRST = re.compile(
    r"(" + _JA_RUN + r"+?)\s*(?:の|で|は)?\s*" + _JA_PLACE_KEYWORD
)
# 天気は東京 / 予報って札幌
_JA_KEYWORD_FIRST = re.compile(
    _JA_PLACE_KEYWORD + r"\s*(?:は|って)?\s*(" + _JA_RUN + r"+)"
)

_TRAILING_PUNCT = re.compile(r"[？?。．.,、!！;；」』\])）]+$")


def has_weather_intent(text: str) -> bool:
    return bool(_WEATHER_GATE.search(text or ""))


def _clean(match: str) -> Optional[str]:
    out = _TRAILING_PUNCT.sub("", match).strip()
    return out or None


def extract_weather_location(text: str) -> Optional[str]:
    if not text or not has_weather_intent(text):
        return None

    for pattern in (_EN_LOCATION, _JA_LOCATION_FIRST, _JA_KEYWORD_FIRST):
        m = pattern.search(text)
        if m and m.group(1):
            loc = _clean(m.group(1))
            if loc:
                return loc
    return None
