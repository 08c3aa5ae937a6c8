import logging

from cfaccess.logs import RedactingFormatter, configure_logging


def _record(msg, *args):
    return logging.LogRecord("cfaccess.test", logging.INFO, __file__, 1, msg, args, None)


def test_secrets_are_masked():
    fmt = RedactingFormatter(["secret-token", "discord://id/secret-token-xyz"], fmt="%(message)s")
    out = fmt.format(_record("token=%s url=%s", "secret-token", "discord://id/secret-token-xyz"))
    assert out == "token=*** url=***"


def test_empty_secrets_are_ignored():
    fmt = RedactingFormatter(["", None], fmt="%(message)s")
    assert fmt.format(_record("nothing to hide")) == "nothing to hide"


def test_configure_logging_installs_single_handler():
    configure_logging("debug", ["abc"])
    configure_logging("warning", ["abc"])
    root = logging.getLogger()
    redacting = [h for h in root.handlers if isinstance(h.formatter, RedactingFormatter)]
    assert len(redacting) == 1
    assert root.level == logging.WARNING
