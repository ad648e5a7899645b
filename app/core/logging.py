import json
import logging
from datetime import UTC, datetime

# Structured attributes copied from ``extra=`` onto each JSON log line.
RELAY_LOG_FIELDS = (
    "request_id",
    "relay",
    "method",
    "path",
    "status_code",
    "code",
    "project_id",
    "user_id",
    "upstream_status",
    "tokens_used",
    "latency_ms",
    "outcome",
    "error",
)


class JsonFormatter(logging.Formatter):
    def __init__(self, fields: tuple[str, ...] = RELAY_LOG_FIELDS):
        super().__init__()
        self._fields = fields

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {
                field: getattr(record, field)
                for field in self._fields
                if getattr(record, field, None) is not None
            }
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(log_level: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())
