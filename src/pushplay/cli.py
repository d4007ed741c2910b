"""CLI entry points for PushPlay.

pushplay-server: Runs the player window and its HTTP server
pushplay: Runs the Textual remote
pushplay-ctl: One-shot remote commands from a shell
"""

import argparse
import json
import logging
import sys
import threading

from pushplay.server.commands import REMOTE_COMMANDS, WINDOW_ACTIONS

logger = logging.getLogger("pushplay")


def run_server():
    """Entry point for pushplay-server command."""
    parser = argparse.ArgumentParser(
        description="PushPlay server - plays videos sent from your phone"
    )
    parser.add_argument(
        "--host", default=None, help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Port to listen on (default: 3000)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to pushplay.toml config file"
    )
    parser.add_argument(
        "--media-dir", default=None, help="Where uploads are stored"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--no-player", action="store_true",
        help="Run without an mpv window (HTTP side only)"
    )
    parser.add_argument(
        "--fullscreen", action="store_true", help="Start the video window fullscreen"
    )
    parser.add_argument(
        "--no-announce", action="store_true", help="Don't advertise the server over mDNS"
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress per-request werkzeug logs"
    )
    parser.add_argument(
        "--open", nargs="+", metavar="PATH", default=None,
        help="Start with these local files or folders as the playlist"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.quiet:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    from werkzeug.serving import make_server

    from pushplay.config import load_config
    from pushplay.server.adapter import AdapterBindError, HeadlessAdapter
    from pushplay.server.app import create_app
    from pushplay.server.context import build_context

    config = load_config(args.config)
    server_config = config.server

    # CLI args override config file
    if args.host:
        server_config.host = args.host
    if args.port:
        server_config.port = args.port
    if args.media_dir:
        server_config.media_dir = args.media_dir
    if args.fullscreen:
        server_config.fullscreen = True
    if args.no_announce:
        server_config.announce = False
    if args.open:
        server_config.local_paths = list(args.open)
        if "local" not in server_config.sources:
            server_config.sources.append("local")

    http_server = None

    def shutdown_http():
        # Called on the router thread; serve_forever must be stopped from elsewhere
        if http_server is not None:
            threading.Thread(target=http_server.shutdown, daemon=True, name="http-shutdown").start()

    adapter = HeadlessAdapter() if args.no_player else None
    context = build_context(server_config, adapter=adapter, on_exit=shutdown_http)
    if args.no_player:
        logger.info("Player window disabled (--no-player)")

    try:
        app = create_app(context=context)
    except AdapterBindError as e:
        logger.error("Could not start the player: %s", e)
        context.shutdown()
        sys.exit(1)

    http_server = make_server(server_config.host, server_config.port, app, threaded=True)
    logger.info(
        "PushPlay server listening on %s:%d (%s)",
        server_config.host, server_config.port, context.url,
    )
    try:
        http_server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        context.shutdown()
        http_server.server_close()
        logger.info("PushPlay server stopped")


def run_tui():
    """Entry point for pushplay TUI command."""
    parser = argparse.ArgumentParser(
        description="PushPlay TUI - terminal remote for a PushPlay player"
    )
    parser.add_argument(
        "--host", default=None, help="Player host (default: from config or localhost)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Player port (default: from config or 3000)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to pushplay.toml config file"
    )
    args = parser.parse_args()

    from pushplay.config import load_config
    from pushplay.tui.app import PushPlayApp

    config = load_config(args.config)
    app = PushPlayApp(host=args.host or config.remote.host, port=args.port or config.remote.port)
    app.run()


def run_ctl(argv: list[str] | None = None) -> int:
    """Entry point for pushplay-ctl command. Talks to a server over HTTP."""
    parser = argparse.ArgumentParser(
        description="PushPlay remote control"
    )
    parser.add_argument("--host", default=None, help="Player host")
    parser.add_argument("--port", type=int, default=None, help="Player port")
    parser.add_argument("--config", default=None, help="Path to pushplay.toml config file")
    sub = parser.add_subparsers(dest="command", required=True)

    for tag in REMOTE_COMMANDS:
        sub.add_parser(tag, help=f"Send the '{tag}' remote command")

    p_upload = sub.add_parser("upload", help="Upload a video and play it")
    p_upload.add_argument("file", help="Video file to send")

    sub.add_parser("files", help="List stored videos")

    p_delete = sub.add_parser("delete", help="Delete a stored video")
    p_delete.add_argument("name", help="File name as shown by 'files'")

    sub.add_parser("memory", help="Show free / total memory on the player")
    sub.add_parser("status", help="Show playback status")

    p_play = sub.add_parser("play-index", help="Play a playlist entry")
    p_play.add_argument("index", type=int)

    p_remove = sub.add_parser("remove", help="Remove a playlist entry")
    p_remove.add_argument("index", type=int)

    p_aspect = sub.add_parser("aspect", help="Set the aspect ratio (e.g. 16:9, Default)")
    p_aspect.add_argument("mode")

    p_window = sub.add_parser("window", help="Window action")
    p_window.add_argument("action", choices=sorted(WINDOW_ACTIONS))

    args = parser.parse_args(argv)

    from pushplay.config import load_config
    from pushplay.tui.api_client import PushPlayAPIError, PushPlayClient

    config = load_config(args.config)
    client = PushPlayClient(args.host or config.remote.host, args.port or config.remote.port)
    try:
        result = _run_ctl_command(client, args)
    except PushPlayAPIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    _print_result(args.command, result)
    return 0


def _run_ctl_command(client, args):
    cmd = args.command
    if cmd in REMOTE_COMMANDS:
        return client.control(cmd)
    if cmd == "upload":
        return client.upload(args.file)
    if cmd == "files":
        return client.list_files()
    if cmd == "delete":
        return client.delete_file(args.name)
    if cmd == "memory":
        return client.get_memory()
    if cmd == "status":
        return client.get_status()
    if cmd == "play-index":
        return client.play_index(args.index)
    if cmd == "remove":
        return client.remove_index(args.index)
    if cmd == "aspect":
        return client.set_aspect_ratio(args.mode)
    if cmd == "window":
        return client.window(args.action)
    raise ValueError(f"Unknown command: {cmd}")


def _print_result(command: str, result):
    if command == "files":
        if not result:
            print("No videos stored")
        for entry in result:
            print(f"  {entry['name']}")
        return
    if command == "memory":
        print(result.get("memory", ""))
        return
    if command == "status":
        current = result.get("current") or {}
        print(f"State:    {result.get('state')}")
        print(f"Current:  {current.get('display_name', '-')}")
        print(f"Muted:    {result.get('muted')}")
        print(f"Aspect:   {result.get('aspect_ratio')}")
        if result.get("last_error"):
            print(f"Error:    {result['last_error']}")
        for entry in result.get("playlist", []):
            marker = ">" if entry.get("current") else " "
            print(f"  {marker} {entry['index'] + 1:2d}. {entry['display_name']}")
        return
    if command in REMOTE_COMMANDS and not result.get("accepted", True):
        print(f"Command not accepted: {command}")
        return
    print(json.dumps(result, indent=2))
