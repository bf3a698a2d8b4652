"""Threaded WSGI server hosting the form application.

The server is bound first and served later so the caller can report a
busy port before anything else happens. Serving stops when the given
threading.Event is set.
"""

import socket
import threading
from typing import Optional

from flask import Flask
from werkzeug.serving import BaseWSGIServer, make_server

from dmzctl.core.exceptions import ServerError


# Listen on every interface, like ":8080"; IPv6 too where the OS can
# serve both families from one socket, since localhost may resolve to ::1
DEFAULT_HOST = "::" if socket.has_dualstack_ipv6() else "0.0.0.0"


class FormServer:
    """Serves a WSGI app on one port until asked to stop."""

    def __init__(self, app: Flask, port: str, host: str = DEFAULT_HOST) -> None:
        self.app = app
        self.host = host
        self.port = port
        self._server: Optional[BaseWSGIServer] = None
        self._stop: Optional[threading.Event] = None

    @property
    def url(self) -> str:
        """Local URL the operator's browser should open."""
        return f"http://localhost:{self.port}"

    @property
    def is_bound(self) -> bool:
        return self._server is not None

    def bind(self) -> None:
        """Bind the listening socket.

        Raises:
            ServerError: If the port is invalid or already in use
        """
        hint = f"端口 {self.port} 可能已被占用，请修改 config.json 中的 server_port 字段（如 8081）"
        try:
            port = int(self.port)
            # werkzeug exits the interpreter on bind failure, so bind here
            ipv6 = ":" in self.host
            sock = socket.create_server(
                (self.host, port),
                family=socket.AF_INET6 if ipv6 else socket.AF_INET,
                dualstack_ipv6=self.host == "::" and socket.has_dualstack_ipv6(),
            )
        except (OSError, ValueError, OverflowError) as e:
            raise ServerError(
                f"Cannot listen on {self.host}:{self.port}",
                hint=hint,
                details=[str(e)],
            ) from e

        with sock:
            self._server = make_server(
                self.host, port, self.app, threaded=True, fd=sock.fileno(),
            )
        # Port "0" asks the OS to pick one
        self.port = str(self._server.port)

    def serve(self, stop: threading.Event) -> None:
        """Serve requests until stop is set. Binds first if needed."""
        if self._server is None:
            self.bind()
        server = self._server
        self._stop = stop

        watcher = threading.Thread(
            target=self._shutdown_when_set,
            args=(server, stop),
            name="form-server-shutdown",
            daemon=True,
        )
        watcher.start()

        try:
            server.serve_forever()
        finally:
            server.server_close()
            self._server = None
            self._stop = None

    def stop(self) -> None:
        """Stop serving, or release a socket that was bound but never served."""
        if self._stop is not None:
            self._stop.set()
        elif self._server is not None:
            self._server.server_close()
            self._server = None

    @staticmethod
    def _shutdown_when_set(server: BaseWSGIServer, stop: threading.Event) -> None:
        stop.wait()
        server.shutdown()
