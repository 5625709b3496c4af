# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Logging for DotPortion backend.

Loggers are named dotportion.<layer>.<component> and write one record per
line to stdout, as JSON or text (config `logging.format`).

Workflow code logs through an ExecutionLogger, which stamps the execution,
workflow and node ids onto every record:

    log = ExecutionLogger(logger, execution_id, workflow_id=workflow_id)
    log.for_node(node.id, node.type).info("Node completed", extra={"duration_ms": 12})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

# Ids shown by the text formatter, in this order
SCOPE_FIELDS = ("execution_id", "workflow_id", "node_id", "node_type")

_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields added to a record through `extra`"""
    return {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per record; extra fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_fields(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with the execution scope as a [key=value] suffix."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        scope = " ".join(
            f"{field}={getattr(record, field)}"
            for field in SCOPE_FIELDS
            if getattr(record, field, None) is not None
        )
        return f"{line} [{scope}]" if scope else line


_FORMATTERS = {"json": JSONFormatter, "text": TextFormatter}


def get_logger(name: str, log_level: str = "INFO", log_format: str = "json") -> logging.Logger:
    """
    Get a logger writing to stdout.

    Calling again for the same name replaces its handler, so the latest
    level and format win.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_FORMATTERS.get(log_format, JSONFormatter)())

    logger = logging.getLogger(name)
    logger.setLevel(log_level.upper())
    logger.handlers = [handler]
    return logger


class ExecutionLogger(logging.LoggerAdapter):
    """
    Logger bound to one workflow execution, optionally narrowed to a node.

    Bound ids are merged into each record's `extra`; fields passed on the
    call win over bound ones.
    """

    def __init__(self, logger: logging.Logger, execution_id: str, **scope: Any):
        super().__init__(logger, {"execution_id": execution_id, **scope})

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs

    def for_node(self, node_id: str, node_type: Optional[str] = None) -> "ExecutionLogger":
        return ExecutionLogger(self.logger, **{**self.extra, "node_id": node_id, "node_type": node_type})


def log_event(
    logger: Union[logging.Logger, logging.LoggerAdapter],
    event: str,
    level: str = "INFO",
    **fields: Any
) -> None:
    """Log a named event; `fields` become structured record fields."""
    logger.log(getattr(logging, level.upper()), event, extra={"event": event, **fields})


def _component_logger(name: str) -> logging.Logger:
    from dotportion.core.config import get_config
    config = get_config()
    return get_logger(name, log_level=config.log_level, log_format=config.log_format)


def get_api_logger() -> logging.Logger:
    return _component_logger("dotportion.api")


def get_service_logger(service_name: str) -> logging.Logger:
    return _component_logger(f"dotportion.service.{service_name}")


def get_workflow_logger(component: str) -> logging.Logger:
    """Logger for the workflow engine; wrap in ExecutionLogger inside a run."""
    return _component_logger(f"dotportion.workflow.{component}")
