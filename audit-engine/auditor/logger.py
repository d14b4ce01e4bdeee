import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from auditor.config import LOG_FILE, LOG_LEVEL

ROOT_LOGGER = "auditor"

TIMESTAMP_FORMAT = "%a %b %d %I:%M:%S %p UTC %Y"


class AuditFormatter(logging.Formatter):
    """
    One line per record, always in UTC:
    [ Mon Oct 19 09:15:02 AM UTC 2026 ] : INFO : history : [HISTORY] Appended ...

    The third column is the `context` passed via extra=, else the component
    part of the logger name ("auditor.history" -> "history"), else "root".
    """

    def format(self, record):
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)
        line = f"[ {stamp} ] : {record.levelname} : {self._context(record)} : {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    @staticmethod
    def _context(record):
        context = getattr(record, "context", None)
        if context:
            return context
        prefix = ROOT_LOGGER + "."
        if record.name.startswith(prefix):
            return record.name[len(prefix):]
        return "root"


def setup_logger(name=ROOT_LOGGER, log_file=None, level=logging.INFO):
    """
    Configure the audit logger tree.
    Handlers live on the 'auditor' logger only; any other name becomes a
    child that propagates there.
    """
    if name != ROOT_LOGGER:
        setup_logger(ROOT_LOGGER, log_file=log_file, level=level)
        return logging.getLogger(name)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    if root.handlers:
        return root

    formatter = AuditFormatter()

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(formatter)
    root.addHandler(stdout)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, encoding="utf-8")
        to_file.setFormatter(formatter)
        root.addHandler(to_file)

    return root


def get_logger(component):
    """Child logger whose records show `component` as their context."""
    return setup_logger(f"{ROOT_LOGGER}.{component}", log_file=LOG_FILE, level=_level())


def _level():
    return getattr(logging, LOG_LEVEL, logging.INFO)


logger = setup_logger(log_file=LOG_FILE, level=_level())
