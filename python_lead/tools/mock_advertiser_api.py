"""
Lightweight mock advertiser API for live e2e testing.

Endpoints:
- POST /accept/...  -> stores payload, returns 200 with a lead id
- POST /reject/...  -> stores payload, returns 200 with {"status": false}
- POST /error/...   -> stores payload, returns 500
- GET  /_last       -> returns last payload
- POST /_reset      -> clears stored payload
- GET  /_health     -> returns 200
"""
import json
import os
import uuid
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional
from urllib.parse import parse_qs


LAST_REQUEST: Optional[dict] = None


class Handler(BaseHTTPRequestHandler):
    def _send_json(self, status_code: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_payload(self):
        length = int(self.headers.get("Content-Length", "0"))
        raw = self.rfile.read(length).decode("utf-8") if length else ""
        content_type = self.headers.get("Content-Type", "")
        if content_type.startswith("application/x-www-form-urlencoded"):
            return {k: v[0] for k, v in parse_qs(raw).items()}
        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            return {"_raw": raw}

    def do_GET(self):  # noqa: N802
        if self.path == "/_health":
            return self._send_json(200, {"status": "ok"})

        if self.path == "/_last":
            return self._send_json(200, {"last": LAST_REQUEST})

        return self._send_json(404, {"error": "not_found"})

    def do_POST(self):  # noqa: N802
        global LAST_REQUEST

        if self.path == "/_reset":
            LAST_REQUEST = None
            return self._send_json(200, {"status": "reset"})

        if self.path.startswith(("/accept/", "/reject/", "/error/")):
            LAST_REQUEST = {
                "path": self.path,
                "headers": {k.lower(): v for k, v in self.headers.items()},
                "payload": self._read_payload(),
            }
            if self.path.startswith("/accept/"):
                return self._send_json(200, {"status": True, "lead_id": str(uuid.uuid4())})
            if self.path.startswith("/reject/"):
                return self._send_json(200, {"status": False, "message": "Duplicate lead"})
            return self._send_json(500, {"error": "Internal error"})

        return self._send_json(404, {"error": "not_found"})

    def log_message(self, format, *args):  # noqa: A003
        # Silence default logging to keep test output clean.
        return


def main() -> None:
    port = int(os.getenv("MOCK_ADVERTISER_PORT", "8080"))
    server = HTTPServer(("0.0.0.0", port), Handler)
    server.serve_forever()


if __name__ == "__main__":
    main()
