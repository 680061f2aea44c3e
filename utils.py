import logging

LABEL_MARK = '|'


def read_file(file):
    """Read a text file into a list of sentences, each a list of whitespace-separated tokens."""
    sentences = []
    with open(file, "r") as fp:
        for sentence in fp:
            temp = sentence.strip().split()
            if temp:
                sentences.append(temp)
    return sentences


def split_token(token):
    """Split an unrolled token `word|label` into (word, label); label is None when absent."""
    word, mark, label = token.rpartition(LABEL_MARK)
    if not mark or not word:
        return token, None
    return word, label


def setup_logger(name, log_file=None, level=logging.INFO):
    """
    Creates a logger that writes to a specific file,
    or to the console when no file is given.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # avoid duplicate lines when called twice
    if not logger.handlers:
        if log_file:
            handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        else:
            handler = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
