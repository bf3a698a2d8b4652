"""DMZ Control - local configuration helper for home router DMZ settings.

Serves a small form on localhost and relays the submitted firewall/DMZ
settings to the router's management API.
"""

__version__ = "1.0.0"
