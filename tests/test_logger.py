import logging

from stopwatch.core.logger import get_logger


def test_handlers_attached_once(tmp_path) -> None:
    name = "stopwatch-test"
    logger = get_logger(name=name, level=logging.INFO, log_dir=tmp_path, console=True)
    again = get_logger(name=name, level=logging.INFO, log_dir=tmp_path, console=True)

    assert logger is again
    assert sorted(h.get_name() for h in logger.handlers) == [f"{name}:console", f"{name}:file"]

    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in (tmp_path / f"{name}.log").read_text(encoding="utf-8")

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
