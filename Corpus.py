import logging
from collections import defaultdict

from utils import read_file, split_token

logger = logging.getLogger(__name__)

UNK = '<unk>'


class Corpus(object):
    """
    A list of books of unrolled dependency trees, one unroll per line.
    Each token is `word` or `word|label`. Words occurring fewer than
    `min_word_occurrence` times in the corpus are read as <unk>.
    """

    def __init__(self, min_word_occurrence=0):
        self.books = []
        self.min_word_occurrence = 0
        self.set_min_word_occurrence(min_word_occurrence)

    def add_book_filename(self, fname):
        self.books.append(fname)

    def set_min_word_occurrence(self, val):
        if val < 0:
            raise ValueError("minimum word occurrence must be non-negative, got %r" % val)
        self.min_word_occurrence = int(val)

    def _read_books(self):
        for fname in self.books:
            logger.debug("reading book %s", fname)
            for sentence in read_file(fname):
                yield [split_token(token) for token in sentence]

    def word_counts(self):
        vocab = defaultdict(int)
        for sentence in self._read_books():
            for word, _ in sentence:
                vocab[word] += 1
        return vocab

    def sentences(self):
        """Yield each unroll as a list of (word, label) pairs."""
        rare = set()
        if self.min_word_occurrence > 0:
            rare = {w for w, c in self.word_counts().items() if c < self.min_word_occurrence}
            logger.info("%d word types occur fewer than %d times", len(rare), self.min_word_occurrence)
        for sentence in self._read_books():
            yield [(UNK if word in rare else word, label) for word, label in sentence]
