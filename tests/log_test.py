import logging

from meshfmt import log
from meshfmt.loaders.ply_header import parse_header


def test_callback_receives_records():
    received = []
    log.set_callback(lambda level, msg: received.append((level, msg)))
    try:
        log.warn("something odd")
        try:
            raise ValueError("boom")
        except ValueError as e:
            log.error(e, "while decoding")
    finally:
        log.set_callback(None)

    assert received[0] == ("warning", "something odd")
    level, msg = received[1]
    assert level == "error"
    assert msg.startswith("while decoding: ValueError: boom")
    assert "Traceback" in msg


def test_set_level_accepts_names(caplog):
    logger = logging.getLogger("meshfmt")
    previous = logger.level
    try:
        log.set_level("debug")
        with caplog.at_level(logging.DEBUG, logger="meshfmt"):
            parse_header("ply\nformat ascii 1.0\nelement vertex 2\nend_header\n")
        assert "vertex[2]" in caplog.text
    finally:
        logger.setLevel(previous)
