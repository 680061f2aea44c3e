import logging

from numpy import zeros, float32 as REAL

from Corpus import Corpus
from Vocab import Vocabulary, EOS, UNSORTED

logger = logging.getLogger(__name__)

NO_LABELS = 0
LABELS_IN_WORD = 1
LABELS_AS_FEATURES = 2
DEP_LABEL_TYPES = (NO_LABELS, LABELS_IN_WORD, LABELS_AS_FEATURES)

LABEL_SEPARATOR = ':'


class RnnState(object):
    """
    Recurrent state of one decoding step. Only the feature layer is kept here:
    `num_features` leading features followed by one slot per dependency label.
    """

    def __init__(self, num_features=0, label_size=0):
        self.num_features = int(num_features)
        self.label_size = int(label_size)
        self.feature_layer = zeros(self.num_features + self.label_size, dtype=REAL)


class RnnTreeLM(object):
    """
    Dependency-tree RNN language model trainer, as far as vocabulary is concerned:
    it owns the corpora and the dependency label vocabulary, and delegates word
    indices and classes to a Vocabulary.
    """

    def __init__(self, num_classes=100, min_word_occurrence=0, dep_label_type=NO_LABELS, num_features=0):
        self.vocabulary = Vocabulary(num_classes=num_classes)
        self.corpus_vocabulary = Corpus()
        self.corpus_train = Corpus()
        self.corpus_valid_test = Corpus()
        self.set_min_word_occurrence(min_word_occurrence)
        self.type_of_dep_labels = NO_LABELS
        self.set_dependency_label_type(dep_label_type)
        self.label2index = {}
        self.num_features = int(num_features)

    def set_min_word_occurrence(self, val):
        self.corpus_vocabulary.set_min_word_occurrence(val)
        self.corpus_train.set_min_word_occurrence(val)
        self.corpus_valid_test.set_min_word_occurrence(val)

    def add_book_train(self, fname):
        self.corpus_vocabulary.add_book_filename(fname)
        self.corpus_train.add_book_filename(fname)

    def add_book_test_valid(self, fname):
        self.corpus_valid_test.add_book_filename(fname)

    def set_dependency_label_type(self, mode):
        """
        0: no dependency labels used
        1: dependency labels concatenated to the word
        2: dependency labels used as features in the feature vector
        """
        if mode not in DEP_LABEL_TYPES:
            raise ValueError("unknown dependency label type %r, expected one of %s" % (mode, DEP_LABEL_TYPES))
        if self.vocabulary.phase != UNSORTED or len(self.vocabulary):
            raise RuntimeError("dependency label type must be set before learning the vocabulary")
        self.type_of_dep_labels = mode

    def get_label_size(self):
        return len(self.label2index)

    def add_label(self, label):
        index = self.label2index.get(label)
        if index is None:
            index = len(self.label2index)
            self.label2index[label] = index
        return index

    def search_label(self, label):
        return self.label2index.get(label)

    def word_token(self, word, label=None):
        """Return the vocabulary entry for `word` carrying dependency `label`."""
        if self.type_of_dep_labels == LABELS_IN_WORD and label is not None:
            return word + LABEL_SEPARATOR + label
        return word

    def read_classes(self, fname):
        return self.vocabulary.read_classes(fname)

    def learn_vocabulary_from_train_file(self):
        """
        Count words (and dependency labels) of the vocabulary corpus into an empty
        vocabulary, then sort it by frequency and assign words to classes.
        Classes may have been read beforehand with read_classes.
        """
        if len(self.vocabulary):
            raise RuntimeError("vocabulary must be empty before learning it from the training books")
        num_unrolls = 0
        num_tokens = 0
        for sentence in self.corpus_vocabulary.sentences():
            for word, label in sentence:
                if label is not None and self.type_of_dep_labels != NO_LABELS:
                    self.add_label(label)
                self.vocabulary.add_word(self.word_token(word, label))
            self.vocabulary.add_word(EOS)
            num_unrolls += 1
            num_tokens += len(sentence) + 1
        if not num_unrolls:
            logger.error("no unrolls found in %d training books", len(self.corpus_vocabulary.books))
            return False

        logger.info("read %d tokens in %d unrolls: %d words, %d labels",
                    num_tokens, num_unrolls, len(self.vocabulary), self.get_label_size())
        self.vocabulary.sort_vocab()
        self.vocabulary.assign_classes()
        return True

    def get_vocabulary_size(self):
        return len(self.vocabulary)

    def save_vocabulary(self, fname):
        self.vocabulary.save(fname)

    def new_state(self):
        """Create a recurrent state whose feature layer has room for the dependency labels."""
        label_size = self.get_label_size() if self.type_of_dep_labels == LABELS_AS_FEATURES else 0
        return RnnState(num_features=self.num_features, label_size=label_size)

    def reset_feature_label_vector(self, state):
        state.feature_layer[state.num_features:state.num_features + state.label_size] = 0

    def update_feature_label_vector(self, label, state):
        if not 0 <= label < state.label_size:
            raise IndexError("label index %d outside [0, %d)" % (label, state.label_size))
        self.reset_feature_label_vector(state)
        state.feature_layer[state.num_features + label] = 1
