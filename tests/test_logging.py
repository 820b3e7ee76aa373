import logging
from pathlib import Path

from archspec.foundation.logging_utils import setup_logger


def test_setup_logger_writes_utf8_file_for_both_packages(tmp_path: Path):
    log_path = tmp_path / "logs" / "archspec.log"
    logger = setup_logger("archspec", level=logging.WARNING, log_file=str(log_path))
    try:
        logger.info("Loaded spec \u2192 controller-service-repository")
        logging.getLogger("archkit.rule_evaluator").warning("Predicate for rule %s raised", "x")

        for handler in logger.handlers:
            handler.flush()
        content = log_path.read_text(encoding="utf-8")
    finally:
        for name in ("archspec", "archkit"):
            target = logging.getLogger(name)
            for handler in list(target.handlers):
                handler.close()
            target.handlers.clear()
            target.propagate = True

    assert "Loaded spec \u2192 controller-service-repository" in content
    assert "| WARNING | archkit.rule_evaluator | Predicate for rule x raised" in content
