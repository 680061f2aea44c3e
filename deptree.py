import sys
import argparse
import logging
import time

from TreeLM import RnnTreeLM, DEP_LABEL_TYPES
from utils import setup_logger

LOGGED_MODULES = ('Vocab', 'Corpus', 'TreeLM')


def process(args):
    starttime = time.time()
    level = logging.DEBUG if args.debug else logging.INFO
    for name in LOGGED_MODULES:
        setup_logger(name, args.log_file, level=level)
    logger = setup_logger('deptree', args.log_file, level=level)

    model = RnnTreeLM(num_classes=args.classes, min_word_occurrence=args.min_count,
                      dep_label_type=args.dep_labels)
    for fname in args.train:
        model.add_book_train(fname)
    for fname in args.valid or []:
        model.add_book_test_valid(fname)

    if args.class_file and not model.read_classes(args.class_file):
        logger.error("could not read classes from %s", args.class_file)
        return 1
    if not model.learn_vocabulary_from_train_file():
        return 1

    model.save_vocabulary(args.save_vocab)
    logger.info("vocabulary: %d words, %d classes, %d labels", model.get_vocabulary_size(),
                model.vocabulary.num_classes, model.get_label_size())
    logger.info("running time: %.3f s", time.time() - starttime)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build the word vocabulary and classes of a dependency-tree RNN LM")

    parser.add_argument("--debug", default=False, action="store_true",
                        help="log debugging details")
    parser.add_argument('--train', required=True, action='append',
                        help='Training book of unrolled trees (repeatable)')
    parser.add_argument('--valid', action='append',
                        help='Validation/test book of unrolled trees (repeatable)')
    parser.add_argument('--class-file',
                        help='File of "word class" pairs; frequency-based classes when absent')
    parser.add_argument('--classes', default=100, type=int,
                        help='Number of frequency-based word classes')
    parser.add_argument('--min-count', default=0, type=int,
                        help='Words seen fewer times are replaced by <unk>')
    parser.add_argument('--dep-labels', default=0, type=int, choices=DEP_LABEL_TYPES,
                        help='0: no labels, 1: labels concatenated to words, 2: labels as features')
    parser.add_argument('--save-vocab', required=True,
                        help='Output vocabulary file')
    parser.add_argument('--log-file',
                        help='Log to this file instead of the console')

    args = parser.parse_args(argv)

    return process(args)


if __name__ == "__main__":
    sys.exit(main())
