from __future__ import annotations
import logging
from typing import Dict, List, Optional

from .config import RankerConfig
from .datatypes import Candidate, Token
from .preprocessing import content_length, is_number, split_sentences
from .tokenizing import TokenizerService, content_tokens, is_content_token

logger = logging.getLogger(__name__)

def _needs_space(left: str, right: str) -> bool:
    return bool(left) and bool(right) and left[-1].isascii() and left[-1].isalnum() \
        and right[0].isascii() and right[0].isalnum()

def join_tokens(surfaces: List[str]) -> str:
    """Join surfaces with a space between latin words and nothing between CJK."""
    out = ""
    for s in surfaces:
        out = out + " " + s if _needs_space(out, s) else out + s
    return out

def _content_runs(tokens: List[Token], config: RankerConfig) -> List[List[Token]]:
    # a run of content tokens is broken by any functional token
    runs: List[List[Token]] = []
    current: List[Token] = []
    for tok in tokens:
        if is_content_token(tok, config.stopwords, config.content_pos_prefixes, config.excluded_pos):
            current.append(tok)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs

def extract_phrases(text: str, tokenizer: TokenizerService,
                    config: Optional[RankerConfig] = None) -> List[Candidate]:
    """N-gram phrase candidates (1..max_phrase_length) over content-token runs.

    One candidate per distinct phrase, recorded at its first occurrence;
    ``frequency`` counts every occurrence. When there are more than
    ``max_candidates`` phrases, the most frequent are kept. The result is
    in document order.
    """
    config = config or RankerConfig()
    if not text or not text.strip():
        return []

    # runs never cross a sentence boundary
    runs = [run for sentence in split_sentences(text)
            for run in _content_runs(tokenizer.tokenize(sentence), config)]
    by_key: Dict[str, Candidate] = {}
    offset = 0  # position counts content tokens across runs
    for run in runs:
        for i in range(len(run)):
            for n in range(1, config.max_phrase_length + 1):
                if i + n > len(run):
                    break
                gram = run[i:i + n]
                phrase = join_tokens([t.surface for t in gram])
                if len(phrase) < config.min_unit_length or is_number(phrase.replace(" ", "")):
                    continue
                key = phrase.lower()
                if key in by_key:
                    by_key[key].frequency += 1
                else:
                    by_key[key] = Candidate(
                        text=phrase,
                        tokens=[t.text for t in gram],
                        position=offset + i,
                        end_position=offset + i + n - 1,
                        frequency=1,
                    )
        offset += len(run)

    candidates = list(by_key.values())
    if len(candidates) > config.max_candidates:
        # stable sort keeps first-occurrence order among equal frequencies
        candidates = sorted(candidates, key=lambda c: -c.frequency)[:config.max_candidates]
        candidates.sort(key=lambda c: c.position)
    logger.debug(f"Extracted {len(candidates)} phrase candidates from {offset} content tokens")
    return candidates

def extract_sentences(text: str, tokenizer: TokenizerService,
                      config: Optional[RankerConfig] = None) -> List[Candidate]:
    """One candidate per sentence with enough content characters and tokens."""
    config = config or RankerConfig()
    by_text: Dict[str, Candidate] = {}
    for idx, sentence in enumerate(split_sentences(text)):
        if content_length(sentence) < config.min_sentence_length:
            continue
        if sentence in by_text:
            by_text[sentence].frequency += 1
            continue
        toks = [t.text for t in content_tokens(tokenizer.tokenize(sentence), config)]
        if not toks:
            continue
        by_text[sentence] = Candidate(text=sentence, tokens=toks, position=idx, end_position=idx)
        if len(by_text) >= config.max_candidates:
            logger.info(f"Sentence candidates capped at {config.max_candidates}")
            break
    candidates = list(by_text.values())
    logger.debug(f"Extracted {len(candidates)} sentence candidates")
    return candidates

def extract_words(text: str, tokenizer: TokenizerService,
                  config: Optional[RankerConfig] = None) -> List[Token]:
    """Content words in document order, for co-occurrence ranking."""
    config = config or RankerConfig()
    if not text or not text.strip():
        return []
    words = [
        t for t in content_tokens(tokenizer.tokenize(text), config)
        if len(t.surface) >= config.min_unit_length
    ]
    logger.debug(f"Extracted {len(words)} content words")
    return words

def word_candidates(words: List[Token]) -> List[Candidate]:
    """Distinct words keyed by normalized form, at first occurrence."""
    by_key: Dict[str, Candidate] = {}
    for pos, tok in enumerate(words):
        key = tok.text.lower()
        if key in by_key:
            by_key[key].frequency += 1
        else:
            by_key[key] = Candidate(text=tok.surface, tokens=[key], position=pos, end_position=pos)
    return list(by_key.values())
