"""Integration tests for the form server on a real localhost socket."""

import socket
import threading
from typing import Generator
from unittest.mock import MagicMock

import pytest
import requests

from dmzctl.core.config import Settings
from dmzctl.core.exceptions import ServerError
from dmzctl.services.router import RouterClient
from dmzctl.web.app import create_app
from dmzctl.web.server import DEFAULT_HOST, FormServer


def http(method: str, url: str, **kwargs) -> requests.Response:
    """One request on a fresh session that ignores proxy settings."""
    with requests.Session() as session:
        session.trust_env = False
        return session.request(method, url, timeout=5, **kwargs)


def has_ipv6_loopback() -> bool:
    if not socket.has_dualstack_ipv6():
        return False
    try:
        with socket.create_server(("::1", 0), family=socket.AF_INET6):
            return True
    except OSError:
        return False


@pytest.fixture
def router() -> MagicMock:
    client = MagicMock(spec=RouterClient)
    client.apply.return_value = (True, "")
    return client


@pytest.fixture
def running_server(router) -> Generator[tuple[FormServer, threading.Event, threading.Thread], None, None]:
    """Serve the form on an OS-assigned port until the test ends."""
    settings = Settings(router_ip="192.168.0.1")
    server = FormServer(create_app(settings, router), port="0", host="127.0.0.1")
    server.bind()
    stop = threading.Event()
    thread = threading.Thread(target=server.serve, args=(stop,), daemon=True)
    thread.start()
    yield server, stop, thread
    stop.set()
    thread.join(timeout=5)


class TestFormServer:
    """Tests for FormServer bind/serve/stop."""

    def test_bind_assigns_port(self, router):
        server = FormServer(create_app(Settings(), router), port="0", host="127.0.0.1")
        server.bind()
        try:
            assert server.is_bound
            assert server.port != "0"
            assert server.url == f"http://localhost:{server.port}"
        finally:
            server.stop()
        assert not server.is_bound

    def test_serves_form(self, running_server):
        server, _, _ = running_server
        response = http("GET", f"http://127.0.0.1:{server.port}/")

        assert response.status_code == 200
        assert 'value="192.168.0.1"' in response.text

    def test_post_redirects_to_success(self, running_server):
        server, _, _ = running_server
        response = http(
            "POST",
            f"http://127.0.0.1:{server.port}/",
            data={"dmz_enable": "1", "router_ip": "192.168.0.1", "stok": "abc"},
        )

        assert response.history[0].status_code == 303
        assert response.url.endswith("/success")

    def test_stop_event_ends_serving(self, running_server):
        server, stop, thread = running_server
        port = int(server.port)

        stop.set()
        thread.join(timeout=5)

        assert not thread.is_alive()
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1).close()

    def test_port_in_use(self, router):
        """A busy port raises ServerError with a hint to change server_port."""
        with socket.create_server(("127.0.0.1", 0)) as busy:
            port = str(busy.getsockname()[1])
            server = FormServer(create_app(Settings(), router), port=port, host="127.0.0.1")

            with pytest.raises(ServerError) as exc:
                server.bind()

        assert "server_port" in exc.value.hint

    def test_invalid_port(self, router):
        server = FormServer(create_app(Settings(), router), port="http")
        with pytest.raises(ServerError):
            server.bind()

    def test_stop_method_ends_serving(self, running_server):
        """stop() on a serving instance fires its stop event."""
        server, stop, thread = running_server

        server.stop()
        thread.join(timeout=5)

        assert stop.is_set()
        assert not thread.is_alive()
        assert not server.is_bound

    @pytest.mark.skipif(not has_ipv6_loopback(), reason="no dual-stack IPv6 loopback")
    def test_default_host_serves_ipv4_and_ipv6(self, router):
        """The default listener answers on both 127.0.0.1 and ::1."""
        assert DEFAULT_HOST == "::"
        server = FormServer(create_app(Settings(), router), port="0")
        server.bind()
        stop = threading.Event()
        thread = threading.Thread(target=server.serve, args=(stop,), daemon=True)
        thread.start()
        try:
            assert http("GET", f"http://127.0.0.1:{server.port}/success").status_code == 200
            assert http("GET", f"http://[::1]:{server.port}/success").status_code == 200
        finally:
            stop.set()
            thread.join(timeout=5)
