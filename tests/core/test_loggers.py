import logging

from loggers import MetadataFormatter, get_logger, render_metadata


def test_render_metadata_sorts_and_masks() -> None:
    rendered = render_metadata(
        {"subject_id": 3, "Authorization": "Bearer abc", "refresh_token": "xyz"}
    )

    assert rendered == "Authorization=***, refresh_token=***, subject_id=3"


def test_metadata_formatter_appends_extra_metadata() -> None:
    formatter = MetadataFormatter("%(message)s")
    record = logging.LogRecord(
        "test", logging.INFO, __file__, 1, "Token revoked", None, None
    )
    record.metadata = {"jti": "abc", "token": "secret"}

    assert formatter.format(record) == "Token revoked | jti='abc', token=***"


def test_metadata_formatter_without_metadata() -> None:
    formatter = MetadataFormatter("%(message)s")
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "plain", None, None)

    assert formatter.format(record) == "plain"


def test_get_logger_is_configured_once() -> None:
    first = get_logger("tests.loggers.once")
    second = get_logger("tests.loggers.once")

    assert first is second
    assert len(first.handlers) == 2
    assert first.propagate is False


def test_plain_logger_has_single_stream_handler() -> None:
    logger = get_logger("tests.loggers.plain", plain_format=True)

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)
    assert not isinstance(logger.handlers[0], logging.FileHandler)
