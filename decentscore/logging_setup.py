import logging
import json
import time
from flask import has_request_context, request


class JsonRequestFormatter(logging.Formatter):
    def format(self, record):
        # Health checks are polled constantly; keep them out of the log
        if has_request_context() and request.path == "/healthz":
            return ""

        data = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if has_request_context():
            data.update({
                "method": request.method,
                "path": request.path,
                "remote_addr": request.headers.get("X-Forwarded-For", request.remote_addr),
                "request_id": request.headers.get("X-Request-ID"),
            })

        # Structured extras passed as logger.info(..., extra={"asset_id": ...})
        for key in ("asset_id", "refresh_class", "provider", "job_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


def setup_logging(app=None):
    root = logging.getLogger()
    level = logging.DEBUG if app is not None and app.config.get("DEBUG") else logging.INFO
    root.setLevel(level)

    # limpia handlers duplicados en reload
    for h in list(root.handlers):
        root.removeHandler(h)

    h = logging.StreamHandler()
    h.setFormatter(JsonRequestFormatter())
    root.addHandler(h)

    # web3/urllib3 log every request at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("web3").setLevel(logging.WARNING)

    if app:
        app.logger.handlers = [h]
        app.logger.setLevel(level)
