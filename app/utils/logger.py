import logging
import sys
import os
from types import FrameType
from loguru import logger
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry._logs import set_logger_provider

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> <level>{level}</level>: "
    "<cyan>[{name}:{line}]</cyan> - <level>{message}</level>"
)

STDLIB_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "gunicorn.error",
    "gunicorn.access",
    "fastapi",
    "sqlalchemy.engine",
    "alembic",
)


class InterceptHandler(logging.Handler):
    """
    Redirects standard logging to Loguru.
    OpenTelemetry's own records are dropped to avoid an export loop.
    """

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith("opentelemetry"):
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the frame that issued the record, outside the logging module
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(level: str | None = None):
    """
    Route every log record of the process through Loguru.

    Standard-library loggers of the server stack are stripped of their own
    handlers and forwarded to Loguru. Records go to stderr and, when
    OTEL_EXPORTER_OTLP_ENDPOINT is set, to the OTLP log exporter as well.

    Parameters:
        level: Minimum level; defaults to the LOG_LEVEL variable, then INFO.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(level)

    for name in STDLIB_LOGGERS:
        log = logging.getLogger(name)
        log.handlers = []
        log.propagate = False
        log.addHandler(InterceptHandler())

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=CONSOLE_FORMAT,
        colorize=True,
        enqueue=True,
    )

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        # Imported here, telemetry imports settings which are not needed for console logs
        from app.core.telemetry import otlp_insecure, telemetry_resource

        try:
            logger_provider = LoggerProvider(resource=telemetry_resource())
            set_logger_provider(logger_provider)
            exporter = OTLPLogExporter(endpoint=endpoint, insecure=otlp_insecure())
            logger_provider.add_log_record_processor(BatchLogRecordProcessor(exporter))

            otel_handler = LoggingHandler(level=logging.INFO, logger_provider=logger_provider)
            logger.add(otel_handler, level=level, serialize=True)

            logger.info("Logs exported over OTLP")

        except Exception as e:
            # stderr directly, the OTLP sink is what failed
            print(f"Log Setup Failed: {e}", file=sys.stderr)

    return logger
