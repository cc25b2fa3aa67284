"""
Unit tests for tokenizer services and the shared fallback wrapper
"""
import pytest

from text_ranker.datatypes import Token
from text_ranker.tokenizing import (
    JiebaTokenizer, NaiveTokenizer, SharedTokenizer, content_tokens, is_content_token,
)


class FailingInit:
    def initialize(self):
        raise RuntimeError("dictionary missing")

    def tokenize(self, text):
        raise AssertionError("must not be called after failed init")


class FailingCall:
    def __init__(self):
        self.calls = 0

    def tokenize(self, text):
        self.calls += 1
        raise RuntimeError("segmenter crashed")


class TestNaiveTokenizer:

    def test_base_forms_and_pos(self, naive_tokenizer):
        tokens = naive_tokenizer.tokenize("Learning 2024 models")

        assert [t.surface for t in tokens] == ["Learning", "2024", "models"]
        assert [t.text for t in tokens] == ["learn", "2024", "model"]
        assert [t.pos for t in tokens] == ["word", "num", "word"]

    def test_empty(self, naive_tokenizer):
        assert naive_tokenizer.tokenize("") == []


class TestSharedTokenizer:

    def test_init_failure_falls_back(self, caplog):
        shared = SharedTokenizer(primary=FailingInit())

        tokens = shared.tokenize("machine learning")

        assert not shared.available
        assert [t.text for t in tokens] == ["machine", "learn"]
        assert "initialization failed" in caplog.text

    def test_call_failure_falls_back_each_time(self):
        primary = FailingCall()
        shared = SharedTokenizer(primary=primary)

        first = shared.tokenize("python workshop")
        second = shared.tokenize("python workshop")

        assert shared.available
        assert primary.calls == 2
        assert [t.text for t in first] == [t.text for t in second] == ["python", "workshop"]

    def test_blank_text_skips_primary(self):
        primary = FailingCall()
        shared = SharedTokenizer(primary=primary)

        assert shared.tokenize("   ") == []
        assert primary.calls == 0

    def test_primary_used_when_healthy(self):
        shared = SharedTokenizer(primary=NaiveTokenizer(), fallback=FailingCall())

        assert [t.surface for t in shared.tokenize("Tokyo Osaka")] == ["Tokyo", "Osaka"]


class TestContentTokens:

    def test_stopwords_and_numbers_removed(self, naive_tokenizer, config):
        tokens = naive_tokenizer.tokenize("The workshop in 2024 is for beginners")

        assert [t.text for t in content_tokens(tokens, config)] == ["workshop", "beginner"]

    @pytest.mark.parametrize("pos,expected", [
        ("n", True),
        ("vn", True),
        ("eng", True),
        ("vshi", False),
        ("ad", False),
        ("uj", False),
        ("x", False),
    ])
    def test_pos_filter(self, pos, expected):
        assert is_content_token(Token(surface="词语", pos=pos)) is expected


class TestJiebaTokenizer:

    def test_segments_chinese_with_flags(self):
        tokenizer = JiebaTokenizer()

        tokens = tokenizer.tokenize("我爱自然语言处理")

        assert tokens
        assert "".join(t.surface for t in tokens) == "我爱自然语言处理"
        assert all(t.pos for t in tokens)
