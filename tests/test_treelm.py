import logging

import numpy as np
import pytest

from Corpus import Corpus, UNK
from TreeLM import RnnTreeLM, RnnState, NO_LABELS, LABELS_IN_WORD, LABELS_AS_FEATURES
from Vocab import EOS, CLASSED
from utils import split_token, read_file, setup_logger
import deptree


@pytest.fixture
def book(tmp_path):
    path = tmp_path / 'book.txt'
    path.write_text("the|det dog|nsubj barks|root\n"
                    "the|det cat|nsubj sleeps|root\n"
                    "\n"
                    "a|det dog|nsubj sleeps|root\n")
    return str(path)


def test_split_token():
    assert split_token('dog|nsubj') == ('dog', 'nsubj')
    assert split_token('dog') == ('dog', None)
    assert split_token('|') == ('|', None)


def test_read_file_skips_blank_lines(book):
    assert len(read_file(book)) == 3


def test_setup_logger_adds_one_handler(tmp_path):
    log_file = str(tmp_path / 'run.log')
    logger = setup_logger('deptree.test', log_file)
    setup_logger('deptree.test', log_file)
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_corpus_replaces_rare_words(book):
    corpus = Corpus(min_word_occurrence=2)
    corpus.add_book_filename(book)
    words = [w for sentence in corpus.sentences() for w, _ in sentence]
    assert words == ['the', 'dog', UNK, 'the', UNK, 'sleeps', UNK, 'dog', 'sleeps']


def test_corpus_rejects_negative_occurrence():
    with pytest.raises(ValueError):
        Corpus().set_min_word_occurrence(-1)


def test_books_and_min_occurrence_are_forwarded(book):
    model = RnnTreeLM()
    model.add_book_train(book)
    model.add_book_test_valid('valid.txt')
    model.set_min_word_occurrence(3)
    assert model.corpus_vocabulary.books == [book]
    assert model.corpus_train.books == [book]
    assert model.corpus_valid_test.books == ['valid.txt']
    for corpus in (model.corpus_vocabulary, model.corpus_train, model.corpus_valid_test):
        assert corpus.min_word_occurrence == 3


def test_learn_vocabulary_without_labels(book):
    model = RnnTreeLM(num_classes=2)
    model.add_book_train(book)
    assert model.learn_vocabulary_from_train_file()
    vocabulary = model.vocabulary
    assert vocabulary.word(0) == EOS
    assert vocabulary.count(0) == 3
    assert model.get_vocabulary_size() == 7
    assert model.get_label_size() == 0
    assert vocabulary.phase == CLASSED
    assert all(vocabulary.class_words)


def test_learn_vocabulary_with_labels_in_words(book):
    model = RnnTreeLM(num_classes=1, dep_label_type=LABELS_IN_WORD)
    model.add_book_train(book)
    assert model.learn_vocabulary_from_train_file()
    assert model.vocabulary.search_word('dog:nsubj') is not None
    assert model.vocabulary.search_word('dog') is None
    assert model.get_label_size() == 3


def test_learn_vocabulary_with_class_file(book, tmp_path):
    classes = tmp_path / 'classes.txt'
    classes.write_text("</s> 0\nthe 1\na 1\ndog 2\ncat 2\nbarks 3\nsleeps 3\n")
    model = RnnTreeLM()
    model.add_book_train(book)
    assert model.read_classes(str(classes))
    assert model.learn_vocabulary_from_train_file()
    vocabulary = model.vocabulary
    assert vocabulary.word(0) == EOS
    assert vocabulary.class_of(0) == 0
    assert vocabulary.num_classes == 4
    assert [vocabulary.class_of(i) for i in range(len(vocabulary))] == [0, 1, 1, 2, 2, 3, 3]


def test_learn_vocabulary_from_empty_corpus(tmp_path):
    empty = tmp_path / 'empty.txt'
    empty.write_text("")
    model = RnnTreeLM()
    model.add_book_train(str(empty))
    assert not model.learn_vocabulary_from_train_file()


def test_label_vocabulary():
    model = RnnTreeLM()
    assert model.add_label('nsubj') == 0
    assert model.add_label('det') == 1
    assert model.add_label('nsubj') == 0
    assert model.search_label('det') == 1
    assert model.search_label('amod') is None
    assert model.get_label_size() == 2


def test_dependency_label_type():
    model = RnnTreeLM()
    with pytest.raises(ValueError):
        model.set_dependency_label_type(3)
    model.set_dependency_label_type(LABELS_IN_WORD)
    assert model.word_token('dog', 'nsubj') == 'dog:nsubj'
    assert model.word_token('dog') == 'dog'
    model.set_dependency_label_type(NO_LABELS)
    assert model.word_token('dog', 'nsubj') == 'dog'


def test_label_type_is_fixed_once_words_are_counted():
    model = RnnTreeLM()
    model.vocabulary.add_word('dog')
    with pytest.raises(RuntimeError):
        model.set_dependency_label_type(LABELS_AS_FEATURES)


def test_feature_label_vector(book):
    model = RnnTreeLM(num_classes=1, dep_label_type=LABELS_AS_FEATURES, num_features=2)
    model.add_book_train(book)
    assert model.learn_vocabulary_from_train_file()
    state = model.new_state()
    assert state.feature_layer.shape == (5,)
    assert state.feature_layer.dtype == np.float32

    state.feature_layer[0] = 0.5
    model.update_feature_label_vector(model.search_label('nsubj'), state)
    assert list(state.feature_layer) == [0.5, 0, 0, 1, 0]
    model.update_feature_label_vector(model.search_label('root'), state)
    assert list(state.feature_layer) == [0.5, 0, 0, 0, 1]
    model.reset_feature_label_vector(state)
    assert list(state.feature_layer) == [0.5, 0, 0, 0, 0]


def test_update_feature_label_out_of_range():
    model = RnnTreeLM()
    with pytest.raises(IndexError):
        model.update_feature_label_vector(0, RnnState(num_features=1, label_size=0))


def test_command_line_builds_vocabulary(book, tmp_path):
    out = str(tmp_path / 'vocab.txt')
    root_level = logging.getLogger().level
    assert deptree.main(['--train', book, '--classes', '2', '--save-vocab', out]) == 0
    with open(out) as fi:
        lines = fi.read().splitlines()
    assert len(lines) == 7
    assert lines[0].split() == ['0', '3', EOS, '0']
    assert logging.getLogger().level == root_level
