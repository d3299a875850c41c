"""Homeserver WebDAV Proxy (Flask).

Relays WebDAV requests from the admin dashboard to the homeserver's ``/dav``
mount, attaching the admin Basic credential server-side so the browser never
holds the token.
"""
import dataclasses
import logging
from typing import Callable, Optional
from urllib.parse import urlencode, urljoin, urlsplit

import requests
from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from .config import ConfigurationError, ProxySettings, load_settings
from .webdav import paths
from .webdav.client import METHOD_OVERRIDE_HEADER, basic_authorization
from .webdav.models import ForwardHeaders

logger = logging.getLogger("homeserver_admin.proxy")

PROXY_PREFIX = "/api/webdav"
INBOUND_METHODS = ["GET", "POST", "PUT", "DELETE"]
# Collection operations; the homeserver needs the trailing slash for these
DIRECTORY_METHODS = ("PROPFIND", "MKCOL")
BODY_METHODS = ("POST", "PUT")
ADMIN_USER = "admin"


class WebDavProxyServer:
    """
    HTTP Proxy that attaches the admin credential and forwards to ``<ADMIN_BASE_URL>/dav``.
    """

    def __init__(self, settings_loader: Callable[[], ProxySettings] = load_settings,
                 prefix: str = PROXY_PREFIX):
        self.settings_loader = settings_loader
        self.prefix = prefix.rstrip("/")
        self.app = Flask(__name__)

        origins = settings_loader().cors_origins
        if origins:
            CORS(self.app, resources={self.prefix + "*": {
                "origins": origins,
                "allow_headers": ["Content-Type", "Depth", "Destination", METHOD_OVERRIDE_HEADER],
                "methods": INBOUND_METHODS + ["OPTIONS"],
            }})

        self._setup_routes()

    def _setup_routes(self):

        @self.app.route(self.prefix, defaults={'dav_path': ''}, methods=INBOUND_METHODS)
        @self.app.route(self.prefix + '/', defaults={'dav_path': ''}, methods=INBOUND_METHODS)
        @self.app.route(self.prefix + '/<path:dav_path>', methods=INBOUND_METHODS)
        def handle_webdav_request(dav_path):
            """Relay one WebDAV request upstream."""
            return self.relay(dav_path)

    def _destination(self, destination: Optional[str], base_url: str) -> Optional[str]:
        """Point a Destination aimed at this proxy's route at the upstream mount instead."""
        if not destination:
            return destination
        dest_path = urlsplit(destination).path
        if dest_path == self.prefix or dest_path.startswith(self.prefix + "/"):
            rest = dest_path[len(self.prefix):].lstrip("/")
            return urljoin(base_url, paths.DAV_MOUNT + "/" + rest)
        return destination

    def relay(self, dav_path: str):
        settings = self.settings_loader()
        try:
            settings.require()
        except ConfigurationError as e:
            logger.error("WebDAV proxy error: %s %s", e, settings.diagnostics())
            return jsonify({
                "error": "WebDAV not configured. Set ADMIN_BASE_URL and ADMIN_TOKEN.",
                "details": settings.diagnostics(),
            }), 500

        method = (request.headers.get(METHOD_OVERRIDE_HEADER) or request.method).upper()
        segments = [s for s in dav_path.split("/") if s]
        webdav_path = paths.upstream_path(segments, directory=method in DIRECTORY_METHODS)

        url = urljoin(settings.admin_base_url, webdav_path)
        query = list(request.args.items(multi=True))
        if query:
            url = f"{url}?{urlencode(query)}"

        forward = ForwardHeaders.from_inbound(
            request.headers,
            authorization=basic_authorization(ADMIN_USER, settings.admin_token),
        )
        destination = self._destination(forward.destination, settings.admin_base_url)
        if destination != forward.destination:
            forward = dataclasses.replace(forward, destination=destination)

        body = request.get_data() if request.method in BODY_METHODS else None

        logger.info("[WebDAV Proxy] %s %s -> %s", method, "/".join(segments) or "(root)", url)
        try:
            upstream = requests.request(method, url, headers=forward.as_dict(), data=body,
                                        timeout=settings.timeout, stream=True)
        except requests.exceptions.RequestException as e:
            logger.error("WebDAV proxy error: %s", e)
            return jsonify({
                "error": "Failed to connect to homeserver WebDAV",
                "details": str(e),
                "url": url,
                **settings.diagnostics(),
            }), 500

        try:
            # 204 carries no body; do not try to read one
            if upstream.status_code == 204:
                return Response(status=204)
            return Response(
                upstream.content,
                status=upstream.status_code,
                content_type=upstream.headers.get("Content-Type") or "application/xml",
            )
        finally:
            upstream.close()

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        settings = self.settings_loader()
        host = host or settings.listen_host
        port = port or settings.listen_port
        logger.info("WebDAV Proxy running on http://%s:%s%s", host, port, self.prefix)
        if settings.missing():
            logger.warning("Proxy not configured yet, missing: %s", ", ".join(settings.missing()))
        from cheroot import wsgi
        server = wsgi.Server((host, port), self.app)
        try:
            server.start()
        except KeyboardInterrupt:
            server.stop()


def create_app(settings_loader: Callable[[], ProxySettings] = load_settings) -> Flask:
    return WebDavProxyServer(settings_loader).app
