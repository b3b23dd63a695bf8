from __future__ import annotations

import logging

from rich.logging import RichHandler

from pgweb_cli.shared.logging import configure_logging, get_logger


def test_logger_info_routes_to_stderr(capfd) -> None:
    logger = get_logger()

    logger.info("structured log to stderr")

    captured = capfd.readouterr()
    assert "structured log to stderr" in captured.err
    assert "structured log to stderr" not in captured.out


def test_debug_only_when_verbose(capfd) -> None:
    get_logger().debug("quiet detail")
    assert "quiet detail" not in capfd.readouterr().err

    get_logger(verbose=True).debug("loud detail")
    assert "loud detail" in capfd.readouterr().err


def test_configure_logging_installs_single_handler() -> None:
    configure_logging(verbose=True)
    configure_logging(verbose=False)

    library_logger = logging.getLogger("pgweb_cli")
    handlers = [h for h in library_logger.handlers if isinstance(h, RichHandler)]
    assert len(handlers) == 1
    assert library_logger.level == logging.WARNING
