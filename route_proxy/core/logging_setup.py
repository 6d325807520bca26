import logging
from route_proxy.core.trace import trace_id_var

LOG_FORMAT = "%(asctime)s [%(levelname)s] [trace_id=%(trace_id)s] %(name)s: %(message)s"


class TraceLogFilter(logging.Filter):
    def filter(self, record):
        record.trace_id = trace_id_var.get() or "-"
        return True


def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # handler filters see records propagated from every module logger
    for handler in logging.getLogger().handlers:
        handler.addFilter(TraceLogFilter())
