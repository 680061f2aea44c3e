import logging
import sys

from numpy import sqrt, cumsum, array, float64

logger = logging.getLogger(__name__)

EOS = '</s>'
BOS = '<s>'

UNSORTED, SORTED, CLASSED = 'unsorted', 'sorted', 'classed'


class VocabWord(object):
    """
    A single vocabulary item: token string, corpus count, output class and
    an (unused) probability slot. Its identity is its index in the owning Vocabulary.

    """

    def __init__(self, **kwargs):
        self.word = ''
        self.count = 0
        self.class_index = 0
        self.prob = 0.0
        self.__dict__.update(kwargs)

    def __lt__(self, other):
        return self.count < other.count

    def __str__(self):
        vals = ['%s:%r' % (key, self.__dict__[key]) for key in sorted(self.__dict__) if not key.startswith('_')]
        return "%s(%s)" % (self.__class__.__name__, ', '.join(vals))


class Vocabulary(object):
    """
    Word <-> index mapping with a partition of the words into output classes
    (for hierarchical softmax).

    The vocabulary goes through three phases: words are counted (unsorted),
    then sorted by decreasing frequency with </s> first, then assigned to classes.
    `words`, `vocab` and `index2word` are only mutated by add_word, sort_vocab
    and load, each of which leaves the two maps consistent with `words`.
    """

    def __init__(self, num_classes=100):
        if num_classes < 1:
            raise ValueError("number of classes must be positive, got %r" % num_classes)
        self.words = []
        self.vocab = {}
        self.index2word = {}
        self.word2class = {}
        self.classes = set()
        self.class_words = []
        self.num_classes = int(num_classes)
        self.use_class_file = False
        self.phase = UNSORTED

    def __len__(self):
        return len(self.words)

    def __contains__(self, word):
        return word in self.vocab

    def _check_phase(self, allowed, action):
        if self.phase not in allowed:
            raise RuntimeError("cannot %s when vocabulary is %s" % (action, self.phase))

    def add_word(self, word):
        """Count one occurrence of `word`, appending it if unknown. Return its index."""
        self._check_phase((UNSORTED,), "add words")
        index = self.vocab.get(word)
        if index is None:
            index = len(self.words)
            class_index = 0
            if self.use_class_file:
                class_index = self.external_class(word)
            self.words.append(VocabWord(word=word, count=1, class_index=class_index))
            # rewritten after sorting by frequency
            self.vocab[word] = index
            self.index2word[index] = word
        else:
            self.words[index].count += 1
        return index

    def search_word(self, word):
        """Return the index of `word`, or None if it is out of vocabulary."""
        return self.vocab.get(word)

    def set_word_count(self, word, count):
        index = self.vocab.get(word)
        if index is None:
            return False
        self.words[index].count = int(count)
        if self.phase == CLASSED:
            # counts changed, classes must be recomputed after any re-sort
            self.phase = SORTED
        return True

    def word(self, index):
        return self.index2word[index]

    def count(self, index):
        return self.words[index].count

    def class_of(self, index):
        return self.words[index].class_index

    def external_class(self, word):
        """Class id read from the class file; words missing from it take the smallest id."""
        return self.word2class.get(word, min(self.classes))

    def words_in_class(self, class_id):
        return self.class_words[class_id]

    def total_count(self):
        return sum(w.count for w in self.words)

    def _rebuild_maps(self):
        self.vocab = {}
        self.index2word = {}
        for index, w in enumerate(self.words):
            self.vocab[w.word] = index
            self.index2word[index] = w.word

    def sort_vocab(self):
        """
        Sort the vocabulary so the most frequent words have the lowest indexes,
        with </s> always at index 0.

        Words of equal count keep their insertion order. When classes come from a
        class file, words are grouped by decreasing external class first so that each
        class is one contiguous block (</s> holds the largest class id).
        """
        self._check_phase((UNSORTED, SORTED, CLASSED), "sort")
        index_eos = self.vocab.get(EOS)
        if index_eos is None:
            raise RuntimeError("%s must be in the vocabulary before sorting" % EOS)
        eos = self.words[index_eos]
        count_eos = eos.count
        eos.count = sys.maxsize
        try:
            if self.use_class_file:
                self.words.sort(key=lambda w: (w is not eos, -self.external_class(w.word), -w.count))
            else:
                self.words.sort(key=lambda w: w.count, reverse=True)
        finally:
            eos.count = count_eos
        self._rebuild_maps()
        self.phase = SORTED
        logger.debug("sorted vocabulary of %d words", len(self.words))

    def read_classes(self, filename):
        """
        Read word classes from a file with one `word class_index` pair per line.

        </s> gets the largest class id (its class is swapped with the largest one)
        so that it comes first in the vocabulary. Return False on a malformed file.
        """
        self._check_phase((UNSORTED,), "read classes")
        try:
            fin = open(filename, "r")
        except IOError:
            logger.error("unable to open class file %s", filename)
            return False

        eos_class = None
        max_class = None
        words = set()
        with fin:
            for line in fin:
                fields = line.split()
                if not fields:
                    continue
                if len(fields) != 2 or not fields[1].lstrip('-').isdigit():
                    logger.error("malformed line in class file %s: %r", filename, line)
                    return False
                w, clnum = fields[0], int(fields[1])
                if w == BOS:
                    logger.error("%s should not be in the class file %s", BOS, filename)
                    return False
                self.word2class[w] = clnum
                self.classes.add(clnum)
                words.add(w)
                max_class = clnum if max_class is None else max(clnum, max_class)
                if w == EOS:
                    eos_class = clnum

        if not words:
            logger.error("empty class file %s", filename)
            return False
        if eos_class is None:
            logger.error("%s must be present in the class file %s", EOS, filename)
            return False

        for w in words:
            if self.word2class[w] == eos_class:
                self.word2class[w] = max_class
            elif self.word2class[w] == max_class:
                self.word2class[w] = eos_class

        self.use_class_file = True
        self.num_classes = len(self.classes)
        for vw in self.words:
            vw.class_index = self.external_class(vw.word)
        logger.info("read %d words in %d classes from %s", len(words), self.num_classes, filename)
        return True

    def assign_classes(self):
        """Assign words to output classes (for hierarchical softmax)."""
        self._check_phase((SORTED, CLASSED), "assign classes")
        if self.use_class_file:
            self._assign_from_class_file()
        else:
            self._assign_by_frequency()
        for w in self.words:
            w.prob = 0.0
        self.regroup_classes()
        self.phase = CLASSED
        logger.info("assigned %d words to %d classes", len(self.words), self.num_classes)

    def _assign_from_class_file(self):
        # collapse external class ids into 0..K-1 following vocabulary order
        cnum = -1
        last = None
        for w in self.words:
            if w.class_index != last:
                last = w.class_index
                cnum += 1
            w.class_index = cnum
        self.num_classes = cnum + 1

    def _assign_by_frequency(self):
        # povey-style: classes hold equal mass of sqrt(count / total_count)
        counts = array([w.count for w in self.words], dtype=float64)
        b = counts.sum()
        if b <= 0:
            raise RuntimeError("cannot assign classes to a vocabulary with no word occurrences")
        weights = sqrt(counts / b)
        shares = cumsum(weights / weights.sum())
        a = 0
        for w, df in zip(self.words, shares):
            w.class_index = a
            if min(df, 1.0) > (a + 1) / float(self.num_classes) and a < self.num_classes - 1:
                a += 1

    def regroup_classes(self):
        """Rebuild class -> word indices from the class index stored on each word."""
        self.class_words = [[] for _ in range(self.num_classes)]
        for index, w in enumerate(self.words):
            if not 0 <= w.class_index < self.num_classes:
                raise RuntimeError("word %r has class %d outside [0, %d)"
                                   % (w.word, w.class_index, self.num_classes))
            self.class_words[w.class_index].append(index)
        empty = [c for c, members in enumerate(self.class_words) if not members]
        if empty:
            raise RuntimeError("empty word classes %s: too many classes (%d) for %d words"
                               % (empty, self.num_classes, len(self.words)))

    def save(self, fname):
        """Write one `index count word class_index` line per word, in vocabulary order."""
        with open(fname, 'w') as fo:
            for index, w in enumerate(self.words):
                fo.write("%6d\t%10d\t%s\t%d\n" % (index, w.count, w.word, w.class_index))
        logger.info("saved vocabulary of %d words to %s", len(self.words), fname)

    @classmethod
    def load(cls, fname, size=None):
        """
        Read a vocabulary saved by `save`. Lines must come in index order starting at 0;
        only the first `size` entries are read when `size` is given.
        """
        words = []
        with open(fname, 'r') as fi:
            for line in fi:
                if size is not None and len(words) >= size:
                    break
                fields = line.split()
                if not fields:
                    continue
                try:
                    if len(fields) != 4:
                        raise ValueError("expected 4 fields, found %d" % len(fields))
                    index, count, word, class_index = int(fields[0]), int(fields[1]), fields[2], int(fields[3])
                except ValueError as e:
                    raise RuntimeError("vocabulary file %s: malformed line %d (%s): %r"
                                       % (fname, len(words) + 1, e, line))
                if index != len(words):
                    raise RuntimeError("vocabulary file %s: index %d found at position %d"
                                       % (fname, index, len(words)))
                words.append(VocabWord(word=word, count=count, class_index=class_index))
        if not words:
            raise RuntimeError("vocabulary file %s holds no words" % fname)
        if size is not None and len(words) != size:
            raise RuntimeError("vocabulary file %s holds %d words, expected %d" % (fname, len(words), size))

        vocabulary = cls(num_classes=max(w.class_index for w in words) + 1)
        vocabulary.words = words
        vocabulary._rebuild_maps()
        vocabulary.regroup_classes()
        vocabulary.phase = CLASSED
        logger.info("loaded vocabulary of %d words from %s", len(words), fname)
        return vocabulary
