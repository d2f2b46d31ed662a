import logging

from movie_inferno.logger import RedactApiKeyFilter, logger, setup_logger


def make_record(msg, *args):
    return logging.LogRecord("movie_inferno", logging.WARNING, __file__, 1, msg, args, None)


def test_api_key_is_redacted():
    record = make_record("GET %s failed", "https://tmdb.test/3/movie/1?api_key=secret123&language=en-US")

    assert RedactApiKeyFilter().filter(record) is True
    assert record.getMessage() == "GET https://tmdb.test/3/movie/1?api_key=***&language=en-US failed"


def test_messages_without_key_are_untouched():
    record = make_record("同步完成: 电影 %d", 5)

    RedactApiKeyFilter().filter(record)

    assert record.args == (5,)
    assert record.getMessage() == "同步完成: 电影 5"


def test_setup_logger_is_idempotent():
    assert setup_logger() is logger
    assert len(logger.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING
