"""Flask HTTP API for PushPlay.

Two audiences:

- the phone app: ``/upload``, ``/files``, ``/delete``, ``/memory``,
  ``/control`` and ``/media/*``;
- the terminal remote and anything else: the ``/api/*`` endpoints.

Routes never touch playback state directly; they go through the command
router held by the application context.
"""

import json
import logging
import queue
from concurrent.futures import TimeoutError as FutureTimeout

from flask import Flask, Response, jsonify, request, send_from_directory

from pushplay.__about__ import __version__
from pushplay.config import ServerConfig
from pushplay.server.adapter import PresentationAdapter
from pushplay.server.commands import REMOTE_COMMANDS, SOURCE_REMOTE, WINDOW_ACTIONS
from pushplay.server.context import AppContext, build_context
from pushplay.server.controller import ASPECT_RATIOS
from pushplay.server.media_store import StoreIOError, memory_summary

logger = logging.getLogger(__name__)


def create_app(
    config: ServerConfig | None = None,
    adapter: PresentationAdapter | None = None,
    context: AppContext | None = None,
    start: bool = True,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config: Server configuration. Uses defaults if None.
        adapter: Presentation adapter. An mpv window if None.
        context: Prebuilt application context (the CLI passes one so it can
            hook server shutdown into the ``exit`` command).
        start: Start the context (render surface, router, sources).
    """
    if context is None:
        context = build_context(config or ServerConfig(), adapter=adapter)
    config = context.config

    app = Flask(__name__)
    app.config["PUSHPLAY"] = config
    if config.max_upload_mb > 0:
        app.config["MAX_CONTENT_LENGTH"] = config.max_upload_mb * 1024 * 1024

    router = context.router
    store = context.store
    event_bus = context.event_bus

    if start:
        context.start()

    # Global JSON error handler - no bare HTML 500s for the phone app
    @app.errorhandler(Exception)
    def handle_exception(e):
        from werkzeug.exceptions import HTTPException
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error: %s", e)
        return jsonify({"error": str(e)}), 500

    # The phone app and browser remotes live on other origins
    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    app.context = context

    # --- Phone app endpoints ---

    @app.route("/upload", methods=["POST"])
    def upload():
        """Store a video by its original name and queue it for playback."""
        file = request.files.get("file")
        if file is None or not file.filename:
            return jsonify({"error": "file required"}), 400
        try:
            stored = store.save(file.filename, file.stream)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StoreIOError as e:
            return jsonify({"error": str(e)}), 500
        return jsonify({"ok": True, **stored})

    @app.route("/files")
    def list_files():
        try:
            return jsonify(store.list_files())
        except StoreIOError as e:
            return jsonify({"error": str(e)}), 500

    @app.route("/delete/<path:file_name>", methods=["DELETE"])
    def delete_file(file_name):
        try:
            store.delete(file_name)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StoreIOError as e:
            return jsonify({"error": str(e)}), 500
        return jsonify({"ok": True, "message": f"Deleted {file_name}"})

    @app.route("/memory")
    def memory():
        return jsonify({"memory": memory_summary()})

    @app.route("/control", methods=["GET", "POST"])
    def control():
        """Remote-control channel: ?command=<tag>."""
        command = (request.values.get("command") or "").strip()
        if not command:
            return jsonify({"error": "command required"}), 400
        try:
            future = router.dispatch_remote(command)
        except Exception as e:
            logger.exception("Control command %s failed: %s", command, e)
            return jsonify({"error": f"Command failed: {e}"}), 500
        return jsonify({"ok": True, "command": command, "accepted": future is not None})

    @app.route("/media/<path:file_name>")
    def media(file_name):
        return send_from_directory(store.media_dir, file_name)

    # --- Player API ---

    @app.route("/api/status")
    def status():
        return jsonify(context.status())

    @app.route("/api/commands")
    def commands():
        return jsonify({"remote": list(REMOTE_COMMANDS), "window": list(WINDOW_ACTIONS)})

    @app.route("/api/playlist")
    def get_playlist():
        return jsonify(context.controller.status()["playlist"])

    @app.route("/api/playlist/<int:index>/play", methods=["POST"])
    def playlist_play(index):
        try:
            item = router.dispatch("load", SOURCE_REMOTE, index=index)
        except IndexError as e:
            return jsonify({"error": str(e)}), 404
        except FutureTimeout:
            return jsonify({"error": "player busy"}), 503
        return jsonify({"ok": True, "item": item.to_dict()})

    @app.route("/api/playlist/<int:index>", methods=["DELETE"])
    def playlist_remove(index):
        try:
            item = router.dispatch("remove_at", SOURCE_REMOTE, index=index)
        except IndexError as e:
            return jsonify({"error": str(e)}), 404
        except FutureTimeout:
            return jsonify({"error": "player busy"}), 503
        return jsonify({"ok": True, "item": item.to_dict()})

    @app.route("/api/aspect-ratio")
    def aspect_ratio_get():
        return jsonify({
            "current": context.controller.status()["aspect_ratio"],
            "modes": ASPECT_RATIOS,
        })

    @app.route("/api/aspect-ratio", methods=["POST"])
    def aspect_ratio_set():
        data = request.get_json(silent=True) or {}
        mode = data.get("mode")
        if not mode:
            return jsonify({"error": "mode required"}), 400
        try:
            router.dispatch("set_aspect_ratio", SOURCE_REMOTE, mode=mode)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except FutureTimeout:
            return jsonify({"error": "player busy"}), 503
        return jsonify({"ok": True, "aspect_ratio": mode})

    @app.route("/api/window/<action>", methods=["POST"])
    def window(action):
        """Window-chrome pass-through (toggle-fullscreen, close-window ...)."""
        if action not in WINDOW_ACTIONS:
            return jsonify({"error": f"unknown window action: {action}"}), 404
        router.submit("window", SOURCE_REMOTE, action=action)
        return jsonify({"ok": True, "action": action})

    @app.route("/api/sources")
    def sources():
        return jsonify(context.sources.list_sources())

    # --- Health Check ---

    @app.route("/api/health")
    def health():
        return jsonify({
            "status": "ok",
            "version": __version__,
            "router_running": router.is_running,
            "pending_commands": router.pending,
            "playlist_length": context.controller.status()["playlist_length"],
            "mdns": bool(context.announcer and context.announcer.active),
        })

    # --- Event Endpoints ---

    @app.route("/api/events")
    def events_stream():
        """SSE stream of playback state changes."""
        def generate():
            q = event_bus.subscribe()
            try:
                while True:
                    try:
                        event = q.get(timeout=30)
                    except queue.Empty:
                        yield ": heartbeat\n\n"
                        continue
                    yield f"event: {event['type']}\ndata: {json.dumps(event)}\n\n"
            finally:
                event_bus.unsubscribe(q)

        return Response(generate(), mimetype="text/event-stream")

    @app.route("/api/events/recent")
    def events_recent():
        limit = request.args.get("limit", 20, type=int)
        return jsonify(event_bus.recent(limit))

    return app
