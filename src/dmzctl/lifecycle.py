"""Program lifecycle: start the form server, open the browser, wait, stop.

The server runs on a background thread. The foreground thread blocks on
one line of console input and then drives an orderly shutdown: signal the
server, give it a moment to close, tear down the browser process.
"""

import threading
import time
from typing import Optional

from dmzctl.core.context import ExecutionContext
from dmzctl.core.exceptions import LaunchError, ServerError
from dmzctl.services.router import RouterClient
from dmzctl.services.supervisor import ProcessSupervisor
from dmzctl.web.app import create_app
from dmzctl.web.server import FormServer


# Seconds the listener gets to close after the stop signal
SHUTDOWN_GRACE = 0.5


class LifecycleController:
    """Wires settings, form server and process supervisor together."""

    def __init__(
        self,
        ctx: ExecutionContext,
        *,
        supervisor: Optional[ProcessSupervisor] = None,
        router_client: Optional[RouterClient] = None,
        open_browser: bool = True,
        port: Optional[str] = None,
        shutdown_grace: float = SHUTDOWN_GRACE,
    ) -> None:
        self.ctx = ctx
        self.supervisor = supervisor or ProcessSupervisor()
        self.router_client = router_client or RouterClient()
        self.open_browser = open_browser
        self.port_override = port
        self.shutdown_grace = shutdown_grace
        self.stop_event = threading.Event()
        self._server_thread: Optional[threading.Thread] = None

    def load_settings(self) -> None:
        """Load settings and report (but survive) a broken config file."""
        console = self.ctx.console
        settings = self.ctx.settings

        error = self.ctx.config_error
        if error is not None:
            console.error(f"读取配置文件错误: {error}")
            for detail in error.details:
                console.verbose(f"  {detail}")
            console.info("将允许通过网页输入配置，服务器使用默认端口 8080...")

        if self.port_override:
            settings.server_port = self.port_override

    def start(self) -> threading.Thread:
        """Start the form server on a background thread."""
        thread = threading.Thread(target=self._run_server, name="form-server", daemon=True)
        thread.start()
        self._server_thread = thread
        return thread

    def _run_server(self) -> None:
        console = self.ctx.console
        settings = self.ctx.settings
        server = FormServer(create_app(settings, self.router_client), port=settings.server_port)

        try:
            server.bind()
        except ServerError as e:
            console.error(f"服务器错误: {e}")
            for detail in e.details:
                console.verbose(f"  {detail}")
            if e.hint:
                console.hint(e.hint)
            return

        console.info(f"服务器启动，访问 {server.url}")
        if self.open_browser:
            self._launch_browser(server.url)

        server.serve(self.stop_event)
        console.debug("Form server stopped")

    def _launch_browser(self, url: str) -> None:
        console = self.ctx.console
        try:
            self.supervisor.launch(url)
        except LaunchError as e:
            console.warn(f"自动打开浏览器失败，请手动访问: {url}")
            console.warn(f"错误原因: {e}")
        else:
            console.success("已自动打开默认浏览器，若未弹出请手动访问上述地址")

    def wait_for_operator(self) -> None:
        """Block until the operator presses Enter (or closes stdin)."""
        self.ctx.console.info("按Enter键关闭程序...")
        try:
            self.ctx.console.input()
        except (EOFError, KeyboardInterrupt):
            pass

    def shutdown(self) -> None:
        """Stop the server and tear down the browser process."""
        self.ctx.console.info("程序正在关闭...")
        self.stop_event.set()
        time.sleep(self.shutdown_grace)
        self.supervisor.cleanup()

    def run(self) -> int:
        """Run the whole interactive session.

        Returns:
            Process exit code (always 0)
        """
        self.load_settings()
        self.start()
        try:
            self.wait_for_operator()
        finally:
            self.shutdown()
        return 0
