import logging
from unittest.mock import MagicMock, patch

import pytest

from app.utils.logger import STDLIB_LOGGERS, InterceptHandler, setup_logging


def _record(name: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=None,
    )


class TestInterceptHandler:
    """Test the InterceptHandler class."""

    def test_ignores_opentelemetry_records(self):
        """OpenTelemetry's own records are dropped to avoid an export loop."""
        with patch("app.utils.logger.logger") as mock_logger:
            InterceptHandler().emit(_record("opentelemetry.sdk.trace"))
            mock_logger.opt.assert_not_called()

    def test_forwards_records_to_loguru(self):
        with patch("app.utils.logger.logger") as mock_logger:
            mock_logger.level.return_value = MagicMock()
            mock_logger.level.return_value.name = "INFO"

            InterceptHandler().emit(_record("uvicorn.error"))

            mock_logger.opt.return_value.log.assert_called_once_with("INFO", "Test message")

    def test_unknown_level_falls_back_to_number(self):
        with patch("app.utils.logger.logger") as mock_logger:
            mock_logger.level.side_effect = ValueError("unknown level")

            InterceptHandler().emit(_record("custom", level=25))

            mock_logger.opt.return_value.log.assert_called_once_with(25, "Test message")


@pytest.fixture(name="restore_logging")
def restore_logging_fixture():
    root_handlers = logging.root.handlers[:]
    root_level = logging.root.level
    yield
    logging.root.handlers = root_handlers
    logging.root.setLevel(root_level)
    for name in STDLIB_LOGGERS:
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True


class TestSetupLogging:
    """Test the setup_logging function."""

    @patch.dict("os.environ", {}, clear=True)
    @patch("app.utils.logger.logger")
    def test_stdlib_loggers_are_intercepted(self, mock_logger, restore_logging):
        result = setup_logging()

        assert result is mock_logger
        assert isinstance(logging.root.handlers[0], InterceptHandler)
        assert logging.root.level == logging.INFO
        access = logging.getLogger("uvicorn.access")
        assert access.propagate is False
        assert isinstance(access.handlers[0], InterceptHandler)
        mock_logger.remove.assert_called_once()
        mock_logger.add.assert_called_once()

    @patch.dict("os.environ", {"LOG_LEVEL": "debug"}, clear=True)
    @patch("app.utils.logger.logger")
    def test_level_from_environment(self, mock_logger, restore_logging):
        setup_logging()

        assert logging.root.level == logging.DEBUG
        assert mock_logger.add.call_args.kwargs["level"] == "DEBUG"

    @patch.dict(
        "os.environ", {"OTEL_EXPORTER_OTLP_ENDPOINT": "http://localhost:4317"}, clear=True
    )
    @patch("app.utils.logger.OTLPLogExporter")
    @patch("app.utils.logger.set_logger_provider")
    @patch("app.utils.logger.LoggerProvider")
    @patch("app.utils.logger.logger")
    def test_otlp_sink_added_with_endpoint(
        self, mock_logger, mock_provider, mock_set_provider, mock_exporter, restore_logging
    ):
        setup_logging("warning")

        mock_set_provider.assert_called_once_with(mock_provider.return_value)
        mock_exporter.assert_called_once_with(
            endpoint="http://localhost:4317", insecure=False
        )
        assert mock_logger.add.call_count == 2
