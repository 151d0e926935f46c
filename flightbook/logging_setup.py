import logging
import sys
from contextvars import ContextVar
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

# request-scoped context, filled by the http middleware and the auth dependency
TRACE_ID_CTX: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
USER_ID_CTX: ContextVar[Optional[int]] = ContextVar("user_id", default=None)


class RequestContextFilter(logging.Filter):
    def filter(self, record):
        record.trace_id = TRACE_ID_CTX.get(None)
        record.user_id = USER_ID_CTX.get(None)
        return True


def setup_logging(level: str = "INFO", debug: bool = False):
    root = logging.getLogger()
    handler = logging.StreamHandler(sys.stdout)
    fmt = JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(user_id)s")
    handler.setFormatter(fmt)
    handler.addFilter(RequestContextFilter())
    root.setLevel(level)
    root.handlers = []
    root.addHandler(handler)
    # sqlalchemy echoes every statement at INFO; keep it for DEBUG runs only
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
