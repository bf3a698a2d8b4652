"""Flask application serving the settings form.

Routes:
    GET  /         - form pre-filled with the current settings
    POST /         - apply the submitted values and push them to the router
    GET  /success  - confirmation page

Settings is shared by reference with no locking. Two submissions racing
from different browser tabs resolve as last-write-wins.
"""

from typing import Mapping, Optional

from flask import Flask, Response, redirect, request, url_for
from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import escape

from dmzctl.core.config import Settings
from dmzctl.core.output import console
from dmzctl.core.validation import is_valid_dmz_enable, normalize_ipv6_firewall
from dmzctl.services.router import RouterClient


SUCCESS_TEXT = "操作成功！可关闭浏览器返回程序，按Enter退出。\n"

_jinja_env = Environment(
    loader=PackageLoader("dmzctl.web", "templates"),
    autoescape=select_autoescape(),
)


def apply_submission(settings: Settings, form: Mapping[str, str]) -> list[str]:
    """Copy submitted form values into settings.

    Missing fields count as empty strings. An invalid DMZ flag is not
    applied; the returned list then carries a warning naming the value
    that was kept.

    Returns:
        Warning lines to show the operator
    """
    warnings = []

    settings.router_ip = form.get("router_ip", "")
    settings.stok = form.get("stok", "")
    settings.ipv6_firewall_enable = normalize_ipv6_firewall(form.get("ipv6_firewall_enable", ""))

    dmz_enable = form.get("dmz_enable", "")
    if is_valid_dmz_enable(dmz_enable):
        settings.dmz_enable = dmz_enable
    else:
        warnings.append(f"DMZ启用状态必须为0或1，已保持原有值: {settings.dmz_enable}")

    settings.dmz_dest_ip = form.get("dmz_dest_ip", "")
    settings.dmz_dest_ip6 = form.get("dmz_dest_ip6", "")

    return warnings


def render_form(settings: Settings) -> str:
    """Render the settings form."""
    template = _jinja_env.get_template("form.html")
    return template.render(settings=settings)


def create_app(settings: Settings, router_client: Optional[RouterClient] = None) -> Flask:
    """Create the form application bound to one Settings instance.

    Args:
        settings: Settings record read by GET and mutated by POST
        router_client: Client used to push submissions (a default one if None)
    """
    app = Flask(__name__)
    client = router_client or RouterClient()

    @app.route("/", methods=["GET", "POST"])
    def index():
        if request.method != "POST":
            return Response(render_form(settings), mimetype="text/html")

        warnings = apply_submission(settings, request.form)
        for warning in warnings:
            console.warn(warning)

        body = "".join(f"{escape(warning)}<br>" for warning in warnings)

        ok, message = client.apply(settings)
        if ok and not warnings:
            return redirect(url_for("success"), code=303)
        if not ok:
            body += f"操作失败: {escape(message)}"
        return Response(body, mimetype="text/html")

    @app.route("/success")
    def success():
        return Response(SUCCESS_TEXT, mimetype="text/plain")

    return app
