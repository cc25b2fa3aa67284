"""Shared fixtures for unit tests: naive tokenizer, default config, sample texts"""

import logging

import pytest

from text_ranker.config import RankerConfig
from text_ranker.datatypes import Candidate
from text_ranker.tokenizing import NaiveTokenizer


EVENTS_TEXT = (
    "Python workshop for beginners in Tokyo. "
    "Python and machine learning workshop. "
    "Cooking class in Osaka."
)


@pytest.fixture
def naive_tokenizer():
    """Deterministic tokenizer; no dictionary loading"""
    return NaiveTokenizer()


@pytest.fixture
def config():
    return RankerConfig()


@pytest.fixture
def events_text():
    return EVENTS_TEXT


@pytest.fixture
def make_candidates():
    """Build candidates from token lists, positions follow list order"""
    def _make(token_lists, texts=None):
        texts = texts or [" ".join(t) for t in token_lists]
        return [
            Candidate(text=text, tokens=list(tokens), position=k, end_position=k)
            for k, (text, tokens) in enumerate(zip(texts, token_lists))
        ]
    return _make


@pytest.fixture(autouse=True)
def restore_package_logger():
    """setup_logging() detaches the package logger from root; undo it after each test"""
    yield
    logger = logging.getLogger("text_ranker")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
