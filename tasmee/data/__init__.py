"""
Reference data for Tasmee.

- corpus: loading and indexing the reference text
- reference: known-correct recitations for cross-validation
"""

from tasmee.data.corpus import (
    Corpus,
    CorpusRepository,
    build_verse,
    load_corpus,
    load_sample_corpus,
    parse_chapters,
    sample_corpus_path,
)
from tasmee.data.reference import (
    InMemoryReferenceDataset,
    ReferenceDataset,
    generate_feedback,
    validate_recitation,
)

__all__ = [
    "Corpus",
    "CorpusRepository",
    "build_verse",
    "load_corpus",
    "load_sample_corpus",
    "parse_chapters",
    "sample_corpus_path",
    "InMemoryReferenceDataset",
    "ReferenceDataset",
    "generate_feedback",
    "validate_recitation",
]
