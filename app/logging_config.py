"""
Structured logging configuration.

Called once from create_app() and from scripts/run_enrichment.py.
LOG_FORMAT picks text (default) or JSON; LOG_LEVEL defaults to INFO.

Pipeline code attaches run context through `extra=`:
    logger.info("...", extra={'user_id': user_id, 'domain': domain})
Both formatters render those fields when present.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone


CONTEXT_FIELDS = ('user_id', 'domain', 'outcome')

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = (
    'urllib3',
    'requests',
    'rq.worker',
    'sqlalchemy.engine',
)


def _context(record):
    return {f: getattr(record, f) for f in CONTEXT_FIELDS if getattr(record, f, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the log aggregator."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ContextTextFormatter(logging.Formatter):
    """Human-readable lines with run context appended as key=value pairs."""

    def format(self, record):
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        pairs = ' '.join(f'{k}={v}' for k, v in context.items())
        head, sep, tail = line.partition('\n')
        return f'{head} [{pairs}]{sep}{tail}'


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(app=None):
    """
    Install a single stderr handler on the root logger.

    Environment variables:
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level = _resolve_level(os.getenv('LOG_LEVEL', 'INFO'))
    use_json = os.getenv('LOG_FORMAT', 'text').lower() == 'json'

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else ContextTextFormatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    # Re-init replaces, never stacks
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.setLevel(level)
