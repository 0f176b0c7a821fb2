"""WSGI middleware that wraps every request in a logging unit of work."""

import logging
import uuid

logger = logging.getLogger(__name__)


class FluentMiddleware:
    """Opens ``fluent_logger.scope(context=environ)`` around each request.

    A fresh request id is written into the scope's global data before the
    wrapped application runs, and the buffered messages are flushed when
    the application returns or raises.
    """

    def __init__(self, app, fluent_logger, request_id_key: str = "request_uuid"):
        self._app = app
        self._logger = fluent_logger
        self._request_id_key = request_id_key

    def __call__(self, environ, start_response):
        with self._logger.scope(context=environ) as log:
            request_id = str(uuid.uuid4())
            log.set_global_data({self._request_id_key: request_id})
            environ["fluent_tagged_logger.request_id"] = request_id
            return self._app(environ, start_response)


def init_app(app, fluent_logger, request_id_key: str = "request_uuid"):
    """Install FluentMiddleware on a Flask application."""
    app.wsgi_app = FluentMiddleware(app.wsgi_app, fluent_logger, request_id_key)
    app.extensions["fluent_tagged_logger"] = fluent_logger
    logger.debug("Installed FluentMiddleware on %s", app.name)
    return app
