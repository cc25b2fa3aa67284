from __future__ import annotations
import re, base64, binascii, math
from collections import Counter
from dataclasses import dataclass
from typing import List

RE_BASE64  = re.compile(r'^[A-Za-z0-9+/]{20,}={0,2}$')   # long base64-looking runs
RE_HEX     = re.compile(r'^[0-9a-fA-F]{16,}$')           # long hex (hashes)
RE_UUID    = re.compile(r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$')
RE_URL     = re.compile(r'^(?:https?|ftp)://', re.I)
RE_NUMBER  = re.compile(r'^[0-9０-９.,:/\-]+$')
RE_ASCII   = re.compile(r'^[\x00-\x7f]+$')

# sentence terminators for latin and CJK text; "." only ends a sentence before whitespace
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[。！？!?])\s*|(?<=\.)\s+|\s*\n\s*")
_PUNCT_RE = re.compile(r"[\s\W_]+")
_WORD_RE = re.compile(r"\w+(?:['\-.]\w+)*")

_VOWELS = set("aeiouyAEIOUY")

def shannon_entropy(s: str) -> float:
    if not s:
        return 0.0
    counts = Counter(s)
    n = len(s)
    return -sum((c/n) * math.log2(c/n) for c in counts.values())

def looks_like_binary_after_b64(s: str) -> bool:
    if len(s) < 20 or len(s) % 4 != 0:
        return False
    try:
        raw = base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError):
        return False
    if not raw:
        return False
    # >30% unprintable bytes means binary payload, not words
    nonprint = sum(1 for b in raw if (b < 32 and b not in (9, 10, 13)) or b == 127)
    return (nonprint / len(raw)) > 0.30

def is_noise_token(tok: str) -> bool:
    """True for ids, hashes, encoded blobs and other tokens that are not words."""
    if not tok:
        return True
    if RE_URL.search(tok):
        return True
    if RE_UUID.match(tok):
        return True
    if RE_HEX.match(tok) and len(tok) >= 24:
        return True
    if RE_BASE64.match(tok) and looks_like_binary_after_b64(tok):
        return True

    # the remaining heuristics only make sense for latin-script tokens
    if not RE_ASCII.match(tok):
        return False
    if len(tok) >= 20 and not any(ch in _VOWELS for ch in tok):
        return True
    letters_digits = sum(ch.isalnum() for ch in tok)
    if len(tok) >= 16 and letters_digits / len(tok) > 0.95 and shannon_entropy(tok) > 4.0:
        return True
    return False

def is_number(tok: str) -> bool:
    return bool(RE_NUMBER.match(tok))

def is_ascii(tok: str) -> bool:
    return bool(RE_ASCII.match(tok))

@dataclass
class PreprocessConfig:
    lowercase: bool = True
    stemming: bool = True

def simple_stem(token: str) -> str:
    # Very light English stemmer; non-latin tokens pass through unchanged
    if not is_ascii(token):
        return token
    t = token.lower()
    if len(t) > 4 and t.endswith("ies"):
        return t[:-3] + "y"     # stories -> story
    if len(t) > 5 and t.endswith("ing"):
        return t[:-3]           # learning -> learn
    if len(t) > 4 and t.endswith("ed"):
        return t[:-2]           # worked -> work
    if len(t) > 4 and t.endswith(("ches", "shes", "xes")):
        return t[:-2]           # boxes -> box
    if len(t) > 3 and t.endswith("s") and not t.endswith(("ss", "us", "is")):
        return t[:-1]           # books -> book
    return t

def split_sentences(text: str) -> List[str]:
    if not text or not text.strip():
        return []
    parts = _SENTENCE_SPLIT_RE.split(text.strip())
    return [p.strip() for p in parts if p and p.strip()]

def content_length(sentence: str) -> int:
    """Number of characters left after removing whitespace and punctuation."""
    return len(_PUNCT_RE.sub("", sentence))

def split_words(text: str) -> List[str]:
    return [m.group(0) for m in _WORD_RE.finditer(text)]

def normalize_token(tok: str, cfg: PreprocessConfig) -> str:
    if cfg.stemming:
        return simple_stem(tok)
    return tok.lower() if cfg.lowercase else tok
