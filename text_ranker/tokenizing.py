from __future__ import annotations
import logging
import threading
from typing import Iterable, List, Optional, Protocol, Tuple

import jieba
import jieba.posseg as pseg

from .config import CONTENT_POS_PREFIXES, EXCLUDED_POS, STOPWORDS, RankerConfig
from .datatypes import Token
from .preprocessing import (
    PreprocessConfig, is_noise_token, is_number, normalize_token, split_words,
)

logger = logging.getLogger(__name__)


class TokenizerService(Protocol):
    def tokenize(self, text: str) -> List[Token]: ...


class NaiveTokenizer:
    """Punctuation/whitespace splitter. Always available, never raises."""

    def __init__(self, cfg: Optional[PreprocessConfig] = None):
        self.cfg = cfg or PreprocessConfig()

    def tokenize(self, text: str) -> List[Token]:
        if not text:
            return []
        tokens = []
        for word in split_words(text):
            pos = "num" if is_number(word) else "word"
            tokens.append(Token(surface=word, base_form=normalize_token(word, self.cfg), pos=pos))
        return tokens


class JiebaTokenizer:
    """Part-of-speech segmentation backed by jieba.

    The dictionary is loaded lazily, once, behind a lock, so one instance
    can be shared by concurrent extraction runs.
    """

    def __init__(self, user_dict: Optional[str] = None, cfg: Optional[PreprocessConfig] = None):
        self.user_dict = user_dict
        self.cfg = cfg or PreprocessConfig()
        self._lock = threading.Lock()
        self._pos_tokenizer: Optional[pseg.POSTokenizer] = None

    def initialize(self) -> None:
        if self._pos_tokenizer is not None:
            return
        with self._lock:
            if self._pos_tokenizer is not None:
                return
            dt = jieba.Tokenizer()
            dt.initialize()
            if self.user_dict:
                dt.load_userdict(self.user_dict)
            self._pos_tokenizer = pseg.POSTokenizer(dt)
            logger.info("jieba tokenizer initialized")

    def tokenize(self, text: str) -> List[Token]:
        self.initialize()
        tokens = []
        for pair in self._pos_tokenizer.lcut(text):
            word = pair.word.strip()
            if not word:
                continue
            tokens.append(Token(
                surface=word,
                base_form=normalize_token(word, self.cfg),
                pos=pair.flag,
            ))
        return tokens


class SharedTokenizer:
    """Process-wide tokenizer handle with a naive fallback.

    Wraps a primary service (jieba by default). Initialization of the
    primary happens once under a lock; if it fails, or if a later call
    fails, tokens come from ``NaiveTokenizer`` instead and the failure is
    only logged.
    """

    def __init__(self, primary: Optional[TokenizerService] = None,
                 fallback: Optional[TokenizerService] = None):
        self.primary = primary if primary is not None else JiebaTokenizer()
        self.fallback = fallback if fallback is not None else NaiveTokenizer()
        self._lock = threading.Lock()
        self._initialized = False
        self._available = False

    @property
    def available(self) -> bool:
        self._ensure_initialized()
        return self._available

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            init = getattr(self.primary, "initialize", None)
            try:
                if init is not None:
                    init()
                self._available = True
            except Exception as e:
                logger.warning(f"Tokenizer initialization failed, using naive splitter: {e}")
                self._available = False
            self._initialized = True

    def tokenize(self, text: str) -> List[Token]:
        if not text or not text.strip():
            return []
        self._ensure_initialized()
        if self._available:
            try:
                return list(self.primary.tokenize(text))
            except Exception as e:
                logger.warning(f"Tokenizer failed, using naive splitter: {e}")
        return self.fallback.tokenize(text)


def is_content_token(token: Token,
                     stopwords: Iterable[str] = STOPWORDS,
                     content_prefixes: Tuple[str, ...] = CONTENT_POS_PREFIXES,
                     excluded_pos: Iterable[str] = EXCLUDED_POS) -> bool:
    """Nouns, adjectives and verbs, minus functional sub-categories and noise."""
    text = token.text
    if not text or not text.strip():
        return False
    if token.pos in excluded_pos or not token.pos.startswith(tuple(content_prefixes)):
        return False
    if text.lower() in stopwords or token.surface.lower() in stopwords:
        return False
    if is_number(token.surface) or is_noise_token(token.surface):
        return False
    return True


def content_tokens(tokens: Iterable[Token], config: RankerConfig) -> List[Token]:
    return [
        t for t in tokens
        if is_content_token(t, config.stopwords, config.content_pos_prefixes, config.excluded_pos)
    ]
