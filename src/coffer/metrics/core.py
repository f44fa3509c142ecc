"""Prometheus exporter bootstrap for coffer.

A port of 0 (the default in config.yaml) leaves the exporter off; a port that
cannot be bound is logged and ignored so a busy port never blocks a session.
"""

import logging
from typing import Optional

from prometheus_client import start_http_server

log = logging.getLogger("coffer.metrics")


def start_server_safe(port: int) -> Optional[int]:
    """Start the metrics HTTP server; return the bound port or None."""
    if not port:
        log.info("Prometheus exporter disabled (metrics_port=0)")
        return None
    try:
        start_http_server(port)
        log.info(f"Prometheus metrics server started on :{port}")
        return port
    except OSError as e:
        log.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None
