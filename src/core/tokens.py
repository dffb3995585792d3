"""Tokenizing and token-set helpers (core domain)."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List

# Straight or typographic double quotes group several words into one token.
_QUOTED_OR_WORD = re.compile(r'"([^"]*?)"|“([^”]*?)”|(\S+)')

_TRIM_CHARS = " \t\r\n?!.,;:'\"()"


def tokenize(text: str, honor_quotes: bool) -> List[str]:
    """Split message text into word tokens.

    Without quote handling the text is split on single spaces, so repeated
    spaces produce empty tokens.
    """

    if not honor_quotes:
        if not text:
            return []
        return text.split(" ")

    tokens: List[str] = []
    for match in _QUOTED_OR_WORD.finditer(text):
        straight, curly, word = match.groups()
        if straight is not None:
            tokens.append(straight)
        elif curly is not None:
            tokens.append(curly)
        else:
            tokens.append(word)
    return tokens


def normalize_token(token: str) -> str:
    return token.strip(_TRIM_CHARS).lower()


def normalize_tokens(tokens: Iterable[str]) -> Dict[str, str]:
    """Return the presence set for a token sequence.

    A mapping (token -> token) keeps O(1) membership checks and lets the
    expression evaluator enumerate keys. Empty tokens are dropped.
    """

    normalized: Dict[str, str] = {}
    for token in tokens:
        value = normalize_token(token)
        if value:
            normalized[value] = value
    return normalized


def tokens_present_any(tokens: Dict[str, str], *wanted: str) -> bool:
    return any(token in tokens for token in wanted)


def tokens_present_all(tokens: Dict[str, str], *wanted: str) -> bool:
    return all(token in tokens for token in wanted)
