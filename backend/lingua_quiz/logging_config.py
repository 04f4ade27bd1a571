"""Application logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

PLAIN_FORMAT = "%(asctime)s - %(levelname)s - %(name)s [%(request_id)s] - %(message)s"


class RequestContextFilter(logging.Filter):
	def filter(self, record: logging.LogRecord) -> bool:
		record.request_id = request_id_var.get()
		return True


class JsonFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:
		base: dict[str, Any] = {
			"level": record.levelname,
			"message": record.getMessage(),
			"logger": record.name,
			"timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
			"request_id": getattr(record, "request_id", "-"),
		}
		if record.exc_info:
			base["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(base, ensure_ascii=False)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
	handler = logging.StreamHandler(sys.stdout)
	handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))
	handler.addFilter(RequestContextFilter())
	root = logging.getLogger()
	root.handlers = [handler]
	root.setLevel(level.upper())
	# httpx logs every request at INFO; our provider client already does
	logging.getLogger("httpx").setLevel(logging.WARNING)
