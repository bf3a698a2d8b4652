"""Local web form for editing and submitting router settings."""

from dmzctl.web.app import create_app
from dmzctl.web.server import FormServer

__all__ = ["create_app", "FormServer"]
