"""Lumina Dev Server — serves a build directory over HTTP while `watch` runs.

Built pages get a small polling script injected before ``</body>`` that
issues ``HEAD`` requests for the current page and reloads when the
``Last-Modified`` header changes. Requests for missing files fall back to a
listing of the built pages.

Usage:
    lumina watch src -o dist --port 3000
"""

from __future__ import annotations

import html
import logging
import mimetypes
import os
import posixpath
import threading
from email.utils import formatdate
from functools import partial
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Optional
from urllib.parse import unquote, urlparse

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
RELOAD_INTERVAL_MS = 1000

LIVE_RELOAD_SCRIPT = f"""<script>
// Lumina live reload
(function() {{
  let lastModified = null;
  setInterval(async () => {{
    try {{
      const response = await fetch(window.location.href, {{ method: 'HEAD' }});
      const modified = response.headers.get('last-modified');
      if (lastModified && modified !== lastModified) {{
        window.location.reload();
      }}
      lastModified = modified;
    }} catch (e) {{}}
  }}, {RELOAD_INTERVAL_MS});
}})();
</script>
"""


def inject_live_reload(page: str) -> str:
    """Insert the reload script before the last ``</body>``, or append it."""
    index = page.rfind("</body>")
    if index == -1:
        return page + LIVE_RELOAD_SCRIPT
    return page[:index] + LIVE_RELOAD_SCRIPT + page[index:]


def resolve_path(root: str, url_path: str) -> Optional[str]:
    """Map a request path onto a file under ``root``; None if it escapes the root."""
    path = posixpath.normpath(unquote(urlparse(url_path).path))
    if path in ("/", "."):
        path = "/index.html"
    parts = [p for p in path.split("/") if p and p != "."]
    if ".." in parts:
        return None
    return os.path.join(root, *parts)


def list_pages(root: str) -> list[str]:
    """Built ``.html`` pages under ``root`` as sorted, slash-separated relative paths."""
    pages = []
    for current, dirs, files in os.walk(root):
        dirs.sort()
        for name in sorted(files):
            if name.endswith(".html"):
                rel = os.path.relpath(os.path.join(current, name), root)
                pages.append(rel.replace(os.sep, "/"))
    return pages


def directory_listing(root: str) -> str:
    items = "\n".join(
        f'    <li><a href="/{html.escape(page)}">{html.escape(page)}</a></li>'
        for page in list_pages(root)
    )
    return "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '  <meta charset="UTF-8">',
        "  <title>Lumina Dev Server</title>",
        "  <style>",
        "    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;"
        " max-width: 800px; margin: 50px auto; padding: 20px; }",
        "    h1 { color: #3b82f6; }",
        "    ul { list-style: none; padding: 0; }",
        "    li { margin: 10px 0; }",
        "    a { color: #3b82f6; text-decoration: none; font-size: 18px; }",
        "  </style>",
        "</head>",
        "<body>",
        "  <h1>Lumina Dev Server</h1>",
        "  <p>Available files:</p>",
        "  <ul>",
        items,
        "  </ul>",
        "</body>",
        "</html>",
    ])


class DevServerHandler(BaseHTTPRequestHandler):
    """Serves files from ``directory``; HTML pages get live reload injected."""

    def __init__(self, *args, directory: str, **kwargs):
        self.directory = directory
        super().__init__(*args, **kwargs)

    def do_GET(self):
        self._serve(include_body=True)

    def do_HEAD(self):
        self._serve(include_body=False)

    def _serve(self, include_body: bool) -> None:
        path = resolve_path(self.directory, self.path)
        if path is None:
            self._respond(403, "text/plain; charset=utf-8", b"Forbidden", include_body)
            return
        if not os.path.isfile(path):
            body = directory_listing(self.directory).encode("utf-8")
            self._respond(200, "text/html; charset=utf-8", body, include_body)
            return

        try:
            with open(path, "rb") as f:
                content = f.read()
            mtime = os.path.getmtime(path)
        except OSError as e:
            logger.warning("cannot serve %s: %s", path, e)
            self._respond(500, "text/plain; charset=utf-8", f"Server Error: {e.strerror}".encode("utf-8"),
                          include_body)
            return

        content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        if content_type == "text/html":
            content = inject_live_reload(content.decode("utf-8", errors="replace")).encode("utf-8")
        if content_type.startswith("text/") or content_type == "application/javascript":
            content_type += "; charset=utf-8"
        self._respond(200, content_type, content, include_body,
                      last_modified=formatdate(mtime, usegmt=True))

    def _respond(self, status: int, content_type: str, body: bytes, include_body: bool,
                 last_modified: Optional[str] = None) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-cache")
        if last_modified:
            self.send_header("Last-Modified", last_modified)
        self.end_headers()
        if include_body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("%s %s", self.address_string(), format % args)


def start_server(directory: str, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> HTTPServer:
    """Start serving ``directory`` on a daemon thread; call ``stop_server`` when done."""
    os.makedirs(directory, exist_ok=True)
    server = HTTPServer((host, port), partial(DevServerHandler, directory=directory))
    thread = threading.Thread(target=server.serve_forever, name="lumina-devserver", daemon=True)
    thread.start()
    logger.info("serving %s on http://%s:%d", directory, host, server.server_address[1])
    return server


def stop_server(server: HTTPServer) -> None:
    server.shutdown()
    server.server_close()
