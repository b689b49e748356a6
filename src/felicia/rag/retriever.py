"""Keyword retriever over the in-memory corpus.

Two distinct signals:
  document signal(d)  = Σ_t occurrences of token t in d   (substring, case-insensitive)
  paragraph score(p)  = |{t : t occurs in p}|             (distinct tokens present)

Documents with zero signal are dropped; surviving paragraphs with a positive
score are pooled across documents, stable-sorted by score (best first), and
the top ``limit`` returned as truncated snippets.
"""

from __future__ import annotations

import re

from felicia.config import RetrievalCfg
from felicia.ingest.corpus import CorpusIndex
from felicia.models import Snippet

_MIN_TOKEN_LEN = 3
_WORD_RE = re.compile(r"\w+")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def tokenize(query: str) -> list[str]:
    """Lower-cased query words longer than two characters, duplicates removed."""
    tokens: list[str] = []
    for word in _WORD_RE.findall(query.lower()):
        if len(word) >= _MIN_TOKEN_LEN and word not in tokens:
            tokens.append(word)
    return tokens


def document_signal(content: str, tokens: list[str]) -> int:
    lowered = content.lower()
    return sum(lowered.count(t) for t in tokens)


def paragraph_score(paragraph: str, tokens: list[str]) -> int:
    lowered = paragraph.lower()
    return sum(1 for t in tokens if t in lowered)


def split_paragraphs(content: str) -> list[str]:
    return [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(content) if p.strip()]


def retrieve(
    query: str,
    corpus: CorpusIndex,
    config: RetrievalCfg | None = None,
) -> list[Snippet]:
    """Return up to ``config.limit`` snippets relevant to *query*, best first.

    An empty corpus, or a query without usable tokens, yields ``[]``; that is
    the normal "no relevant knowledge" outcome, not an error.
    """
    cfg = config or RetrievalCfg()
    tokens = tokenize(query)
    if not tokens or not corpus:
        return []

    candidates: list[Snippet] = []
    for doc in corpus.documents:
        if document_signal(doc.content, tokens) == 0:
            continue
        for paragraph in split_paragraphs(doc.content):
            score = paragraph_score(paragraph, tokens)
            if score > 0:
                candidates.append(
                    Snippet(
                        source_name=doc.name,
                        text=_truncate(paragraph, cfg.snippet_chars),
                        score=score,
                    )
                )

    candidates.sort(key=lambda s: s.score, reverse=True)
    return candidates[: cfg.limit]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3].rstrip() + "..."
