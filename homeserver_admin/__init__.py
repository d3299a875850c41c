"""
Homeserver Admin
WebDAV proxy and client tooling for administering a Pubky homeserver.
"""

__version__ = "0.3.0"
