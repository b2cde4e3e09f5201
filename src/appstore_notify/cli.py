from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import os
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

from .config import AppConfig
from .dispatch import DispatchCoordinator
from .envelope import decode_envelope, decode_envelope_object
from .exceptions import ConfigurationError
from .handler import NotificationHandler
from .push import RecordingNotifier
from .settings import Settings, build_app_config, load_settings, read_env_file
from .utils import mask_key, mask_url

_DEFAULT_HOST = "127.0.0.1"
_DEFAULT_PORT = 8787
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_parser() -> argparse.ArgumentParser:
    shared = argparse.ArgumentParser(add_help=False)
    _add_global_args(shared)

    parser = argparse.ArgumentParser(
        prog="appstore-notify",
        description="App Store server notification relay",
        parents=[shared],
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    decode = subparsers.add_parser("decode", help="Decode a signed envelope without verifying it", parents=[shared])
    decode.add_argument("--token", help="Envelope string (header.payload.signature)")
    _add_body_args(decode)
    decode.add_argument(
        "--nested",
        action="store_true",
        help="Also decode data.signedTransactionInfo and data.signedRenewalInfo",
    )
    decode.set_defaults(handler=_cmd_decode)

    preview = subparsers.add_parser(
        "preview",
        help="Run the pipeline for one body and print the composed notification (nothing is sent)",
        parents=[shared],
    )
    preview.add_argument("--app", required=True, help="App name as listed in APPS")
    preview.add_argument("--enable-sandbox", action="store_true", help="Treat Sandbox notifications as enabled")
    _add_body_args(preview)
    preview.set_defaults(handler=_cmd_preview)

    apps = subparsers.add_parser("apps", help="List configured apps", parents=[shared])
    apps.set_defaults(handler=_cmd_apps)

    serve = subparsers.add_parser("serve", help="Run the notification HTTP endpoint", parents=[shared])
    serve.add_argument("--host", default=_DEFAULT_HOST, help=f"Listen host (default: {_DEFAULT_HOST})")
    serve.add_argument("--port", type=int, default=_DEFAULT_PORT, help=f"Listen port (default: {_DEFAULT_PORT})")
    serve.add_argument("--max-requests", type=int, help="Auto stop after handling N POST requests")
    serve.set_defaults(handler=_cmd_serve)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    output_format = "human"
    try:
        args = parser.parse_args(argv)
        output_format = str(args.output_format)
        _configure_logging(str(args.log_level))
        handler = getattr(args, "handler", None)
        if handler is None:
            raise ValueError("missing command handler")
        result = handler(args)
        _print_result(result, output_format=output_format)
        return 0
    except SystemExit as exc:
        return _system_exit_code(exc)
    except ConfigurationError as exc:
        return _print_error(str(exc), exit_code=2, output_format=output_format)
    except ValueError as exc:
        return _print_error(str(exc), exit_code=2, output_format=output_format)
    except Exception as exc:
        return _print_error(f"{type(exc).__name__}: {exc}", exit_code=1, output_format=output_format)


def _add_global_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=("human", "json"),
        default="human",
        help="Output format. Default: human",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
        help="Logging level. Default: WARNING",
    )
    parser.add_argument("--env-file", help="Read missing settings from a KEY=VALUE file")


def _add_body_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--body-json", help="Raw notification body JSON string")
    parser.add_argument("--body-file", help="Raw notification body file path")
    parser.add_argument("--body-stdin", action="store_true", help="Read raw notification body JSON from stdin")


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format=_LOG_FORMAT)


def _cmd_decode(args: argparse.Namespace) -> Mapping[str, Any]:
    token = getattr(args, "token", None)
    if token is None:
        body = _parse_body(args)
        token = body.get("signedPayload")
        if not token:
            raise ValueError("body has no signedPayload")
    elif _body_source_count(args):
        raise ValueError("--token cannot be combined with --body-json, --body-file or --body-stdin")

    if not getattr(args, "nested", False):
        decoded = decode_envelope(token)
        if decoded is None:
            raise ValueError("envelope could not be decoded")
        return {"payload": decoded}

    payload = decode_envelope_object(token)
    if payload is None:
        raise ValueError("envelope could not be decoded as a JSON object")
    result: dict[str, Any] = {"payload": payload}
    data = payload.get("data")
    if isinstance(data, Mapping):
        for source_key, target_key in (
            ("signedTransactionInfo", "transaction_info"),
            ("signedRenewalInfo", "renewal_info"),
        ):
            if data.get(source_key):
                result[target_key] = decode_envelope(data.get(source_key))
    return result


def _cmd_preview(args: argparse.Namespace) -> Mapping[str, Any]:
    environ = _load_environ(args)
    settings = load_settings(environ)
    app = settings.get_app(str(args.app)) or build_app_config(str(args.app).strip().lower(), environ)
    app = dataclasses.replace(
        app,
        push_key=app.push_key or "preview",
        sandbox_enabled=app.sandbox_enabled or bool(getattr(args, "enable_sandbox", False)),
    )
    body = _parse_body(args)

    recorder = RecordingNotifier()
    handler = NotificationHandler(app, DispatchCoordinator(recorder))
    result = asyncio.run(handler.handle(body))

    view: dict[str, Any] = dict(result.to_dict())
    if recorder.sent:
        sent = recorder.sent[0]
        view["notification"] = {"title": sent.title, "body": sent.body, **sent.options.to_dict()}
    return view


def _cmd_apps(args: argparse.Namespace) -> Mapping[str, Any]:
    settings = load_settings(_load_environ(args))
    return {"apps": [_app_view(app) for app in settings.apps.values()]}


def _cmd_serve(args: argparse.Namespace) -> Mapping[str, Any]:
    settings = load_settings(_load_environ(args))
    if not settings.apps:
        raise ConfigurationError("no apps configured: set APPS")
    max_requests = getattr(args, "max_requests", None)
    if max_requests is not None and max_requests <= 0:
        raise ValueError("max-requests must be > 0")
    handled = serve(
        settings,
        host=str(args.host),
        port=int(args.port),
        output_format=str(args.output_format),
        max_requests=max_requests,
    )
    return {"ok": True, "requests": handled}


class _LoopThread:
    """Event loop running in a daemon thread; request threads submit coroutines to it."""

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="appstore-notify-loop", daemon=True)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def start(self) -> None:
        self._thread.start()

    def submit(self, coro: Awaitable[T]) -> T:
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()  # type: ignore[arg-type]

    def stop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()


HandlerFactory = Callable[[AppConfig], NotificationHandler]


class NotificationServer:
    """Threaded HTTP front door serving every configured app under ``/<app>``."""

    def __init__(
        self,
        settings: Settings,
        *,
        host: str = _DEFAULT_HOST,
        port: int = _DEFAULT_PORT,
        max_requests: int | None = None,
        handler_factory: HandlerFactory | None = None,
    ) -> None:
        self._settings = settings
        self._max_requests = max_requests
        self._requests = 0
        self._lock = threading.Lock()
        self._loop_thread = _LoopThread()
        self._loop_thread.start()
        factory = handler_factory or NotificationHandler.for_app

        async def _build_handlers() -> dict[str, NotificationHandler]:
            return {name: factory(app) for name, app in settings.apps.items()}

        self._handlers = self._loop_thread.submit(_build_handlers())
        try:
            self._httpd = ThreadingHTTPServer((host, port), self._request_handler_class())
        except OSError:
            self._close_handlers()
            raise

    @property
    def server_address(self) -> tuple[str, int]:
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    @property
    def requests(self) -> int:
        with self._lock:
            return self._requests

    def serve_forever(self) -> None:
        self._httpd.serve_forever()

    def shutdown(self) -> None:
        self._httpd.shutdown()

    def close(self) -> None:
        self._httpd.server_close()
        self._close_handlers()

    def _close_handlers(self) -> None:
        try:
            for handler in self._handlers.values():
                self._loop_thread.submit(handler.aclose())
        finally:
            self._loop_thread.stop()

    def _count_request(self) -> None:
        with self._lock:
            self._requests += 1
            reached = self._max_requests is not None and self._requests >= self._max_requests
        if reached:
            threading.Thread(target=self._httpd.shutdown, daemon=True).start()

    def _request_handler_class(self) -> type[BaseHTTPRequestHandler]:
        runtime = self

        class _Handler(BaseHTTPRequestHandler):
            def do_POST(self) -> None:  # noqa: N802
                raw_body = _read_request_body(self.headers, self.rfile)
                app_name = _app_name_from_path(self.path)
                handler = runtime._handlers.get(app_name)
                if handler is None:
                    self._send_json(404, {"status": "error", "message": f"App not found: {app_name}"})
                    return
                try:
                    data = json.loads(raw_body.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                    payload: Mapping[str, Any] = {"status": "error", "message": f"Invalid JSON body: {exc}"}
                else:
                    payload = runtime._loop_thread.submit(handler.handle(data)).to_dict()
                runtime._count_request()
                self._send_json(200, payload)

            def do_GET(self) -> None:  # noqa: N802
                app_name = _app_name_from_path(self.path)
                if not app_name:
                    self._send_json(200, {"apps": [_app_view(app) for app in runtime._settings.apps.values()]})
                    return
                app = runtime._settings.get_app(app_name)
                if app is None:
                    self._send_json(404, {"status": "error", "message": f"App not found: {app_name}"})
                    return
                self._send_json(200, _app_view(app))

            def do_PUT(self) -> None:  # noqa: N802
                self._method_not_allowed()

            def do_PATCH(self) -> None:  # noqa: N802
                self._method_not_allowed()

            def do_DELETE(self) -> None:  # noqa: N802
                self._method_not_allowed()

            def log_message(self, format: str, *args: object) -> None:  # noqa: A003
                logger.debug("%s - %s", self.address_string(), format % args)

            def _method_not_allowed(self) -> None:
                _read_request_body(self.headers, self.rfile)
                self._send_json(405, {"status": "error", "message": "Method Not Allowed"})

            def _send_json(self, status_code: int, payload: Mapping[str, Any]) -> None:
                body = json.dumps(_to_jsonable(payload), ensure_ascii=False).encode("utf-8")
                self.send_response(status_code)
                self.send_header("Content-Type", "application/json; charset=utf-8")
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

        return _Handler


def serve(
    settings: Settings,
    *,
    host: str = _DEFAULT_HOST,
    port: int = _DEFAULT_PORT,
    output_format: str = "human",
    max_requests: int | None = None,
) -> int:
    server = NotificationServer(settings, host=host, port=port, max_requests=max_requests)
    bound_host, bound_port = server.server_address
    _print_runtime_status(
        {"status": "listening", "host": bound_host, "port": bound_port, "apps": settings.app_names},
        output_format=output_format,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.close()
    _print_runtime_status({"status": "stopped", "requests": server.requests}, output_format=output_format)
    return server.requests


def _app_name_from_path(path: str) -> str:
    return path.split("?", 1)[0].strip("/").lower()


def _app_view(app: AppConfig) -> dict[str, Any]:
    return {
        "name": app.name,
        "product_name": app.product_name,
        "push_key": mask_key(app.push_key) if app.push_key else None,
        "push_icon": app.push_icon or None,
        "push_server": app.push_server,
        "forward_url": mask_url(app.forward_url) or None,
        "sandbox_enabled": app.sandbox_enabled,
        "notifications": app.notifications.to_dict(),
    }


def _load_environ(args: argparse.Namespace) -> dict[str, str]:
    values = dict(os.environ)
    env_file = getattr(args, "env_file", None)
    if env_file:
        for key, value in read_env_file(env_file).items():
            values.setdefault(key, value)
    return values


def _body_source_count(args: argparse.Namespace) -> int:
    return (
        int(bool(getattr(args, "body_json", None)))
        + int(bool(getattr(args, "body_file", None)))
        + int(bool(getattr(args, "body_stdin", False)))
    )


def _parse_body(args: argparse.Namespace) -> dict[str, Any]:
    raw = _resolve_raw_body(
        body_json=getattr(args, "body_json", None),
        body_file=getattr(args, "body_file", None),
        stdin_enabled=bool(getattr(args, "body_stdin", False)),
    )
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"body is not valid JSON: {exc}") from exc
    if not isinstance(parsed, Mapping):
        raise ValueError("body must be a JSON object")
    return {str(key): value for key, value in parsed.items()}


def _resolve_raw_body(
    *,
    body_json: str | None,
    body_file: str | None,
    stdin_enabled: bool = False,
) -> bytes:
    source_count = int(bool(body_json)) + int(bool(body_file)) + int(bool(stdin_enabled))
    if source_count > 1:
        raise ValueError("only one of --body-json, --body-file or --body-stdin can be used")
    if source_count == 0:
        raise ValueError("one of --body-json, --body-file or --body-stdin is required")
    if body_json is not None:
        return body_json.encode("utf-8")
    if body_file is not None:
        return Path(str(body_file)).read_bytes()
    return _read_stdin_bytes()


def _read_stdin_bytes() -> bytes:
    stream = getattr(sys.stdin, "buffer", None)
    if stream is None:
        return sys.stdin.read().encode("utf-8")
    data = stream.read()
    if isinstance(data, bytes):
        return data
    return bytes(data)


def _read_request_body(headers: Any, stream: Any) -> bytes:
    content_length_raw = None
    items = headers.items() if hasattr(headers, "items") else []
    for key, value in items:
        if str(key).lower() == "content-length":
            content_length_raw = value
            break
    if content_length_raw is None:
        return b""
    try:
        content_length = int(str(content_length_raw))
    except ValueError:
        return b""
    if content_length <= 0:
        return b""
    return bytes(stream.read(content_length))


def _print_result(result: Mapping[str, Any], *, output_format: str) -> None:
    normalized = _to_jsonable(result)
    if output_format == "json":
        print(json.dumps(normalized, ensure_ascii=False, indent=2))
        return
    _print_human(normalized)


def _print_human(result: Mapping[str, Any]) -> None:
    mapping = {str(key): value for key, value in result.items()}
    if mapping and _is_flat_mapping(mapping):
        width = max(len(key) for key in mapping)
        for key in sorted(mapping):
            print(f"{key:<{width}} : {mapping[key]}")
        return
    print(json.dumps(mapping, ensure_ascii=False, indent=2))


def _print_runtime_status(payload: Mapping[str, Any], *, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(_to_jsonable(payload), ensure_ascii=False))
        return
    status = payload.get("status")
    if status == "listening":
        print(f"Listening on http://{payload.get('host')}:{payload.get('port')}/<app>")
        print(f"Apps: {', '.join(payload.get('apps') or [])}")
        return
    if status == "stopped":
        print(f"Server stopped. requests={payload.get('requests')}")
        return
    print(json.dumps(_to_jsonable(payload), ensure_ascii=False))


def _print_error(message: str, *, exit_code: int, output_format: str) -> int:
    if output_format == "json":
        print(
            json.dumps(
                {
                    "ok": False,
                    "error": message,
                    "exit_code": exit_code,
                },
                ensure_ascii=False,
            )
        )
    else:
        print(f"Error: {message}", file=sys.stderr)
    return exit_code


def _is_flat_mapping(mapping: Mapping[str, Any]) -> bool:
    for value in mapping.values():
        if isinstance(value, (dict, list, tuple, set)):
            return False
    return True


def _to_jsonable(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _to_jsonable(to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_jsonable(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _system_exit_code(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


if __name__ == "__main__":
    sys.exit(main())
