"""Tests for the PprintLogger and setup_logging functionality.

This module verifies:
- PprintLogger wraps standard logging.Logger correctly
- Dicts are pretty-printed and pydantic models dumped as JSON
- pprint=False uses simple string conversion
- Plain strings are logged unchanged
- setup_logging names the logger and does not stack handlers
"""

import logging
from io import StringIO

from marklist.logging import PprintLogger, setup_logging
from marklist.reconcile import ReconcileSummary


def _capture(name: str) -> tuple[PprintLogger, logging.StreamHandler]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    handler = logging.StreamHandler(StringIO())
    handler.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    return PprintLogger(logger), handler


class TestPprintLogger:
    def test_pprint_formats_dict(self) -> None:
        logger, handler = _capture("test.dict")

        logger.info({"message": "Tabulated 2 rows", "skipped": {"noise": 1}})

        output = handler.stream.getvalue()
        assert "Tabulated 2 rows" in output
        assert "'skipped': {'noise': 1}" in output

    def test_pydantic_model_dumped_as_json(self) -> None:
        logger, handler = _capture("test.model")

        logger.info(ReconcileSummary(found=2, not_found=1, total=3))

        output = handler.stream.getvalue()
        assert '"found": 2' in output
        assert '"not_found": 1' in output

    def test_pprint_false_uses_str(self) -> None:
        logger, handler = _capture("test.plain")

        logger.warning({"key": "value"}, pprint=False)

        assert "{'key': 'value'}" in handler.stream.getvalue()

    def test_strings_are_not_quoted(self) -> None:
        logger, handler = _capture("test.string")

        logger.debug("No text to tabulate")

        assert handler.stream.getvalue().strip() == "No text to tabulate"

    def test_delegates_other_attributes(self) -> None:
        logger, _ = _capture("test.delegate")

        assert logger.name == "test.delegate"
        assert logger.isEnabledFor(logging.DEBUG)


class TestSetupLogging:
    def test_explicit_name(self) -> None:
        logger = setup_logging(name="marklist.test")

        assert isinstance(logger, PprintLogger)
        assert logger.name == "marklist.test"

    def test_defaults_to_caller_name(self) -> None:
        logger = setup_logging()

        assert logger.name == "test_defaults_to_caller_name"

    def test_handlers_not_duplicated(self) -> None:
        setup_logging(name="marklist.handlers")
        setup_logging(name="marklist.handlers")

        assert len(logging.getLogger("marklist.handlers").handlers) == 1

    def test_level_applied(self) -> None:
        logger = setup_logging(level=logging.WARNING, name="marklist.level")

        assert logger.level == logging.WARNING

    def test_critical(self) -> None:
        logger, handler = _capture("test.critical")

        logger.critical({"message": "State file unwritable"})

        assert "State file unwritable" in handler.stream.getvalue()
