"""Web module"""

from termtile.web.app import create_app
from termtile.web.server import WebServer

__all__ = ["create_app", "WebServer"]
