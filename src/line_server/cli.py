import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import List, Optional

from line_server.client import LineServerClient
from line_server.config import Settings, configure_logging, settings
from line_server.errors import InvalidIndex
from line_server.jobs.prewarm import prewarm
from line_server.preprocess.generate_sample_file import generate_sample_file
from line_server.service import LineService, build_line_service


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    if getattr(args, "file", None):
        overrides["file_path"] = Path(args.file)
    if getattr(args, "chunk_size", None):
        overrides["chunk_size"] = args.chunk_size
    if getattr(args, "store", None):
        overrides["store_backend"] = args.store
    if getattr(args, "store_path", None):
        overrides["store_path"] = Path(args.store_path)
    return dataclasses.replace(settings, **overrides)


def _service(args: argparse.Namespace) -> LineService:
    return build_line_service(_settings_from_args(args))


def cmd_fetch(args: argparse.Namespace) -> int:
    service = _service(args)
    try:
        line = service.fetch_line(args.index)
    except InvalidIndex as err:
        print(str(err), file=sys.stderr)
        return 2
    finally:
        service.store.close()
    if line is None:
        print("Line index out of range", file=sys.stderr)
        return 1
    # Records are raw bytes; write them through unchanged.
    sys.stdout.flush()
    sys.stdout.buffer.write(line + b"\n")
    sys.stdout.buffer.flush()
    return 0


def cmd_remote(args: argparse.Namespace) -> int:
    client = LineServerClient(base_url=args.url or None, retries=args.retries)
    line = client.fetch_line(args.index)
    if line is None:
        print("Line index out of range", file=sys.stderr)
        return 1
    print(line)
    return 0


def cmd_prewarm(args: argparse.Namespace) -> int:
    service = _service(args)
    try:
        total = prewarm(service)
    finally:
        service.store.close()
    print(f"Indexed {total} line(s) from {service.file_path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    service = _service(args)
    try:
        print(json.dumps(service.status(), indent=2))
    finally:
        service.store.close()
    return 0


def cmd_generate(args: argparse.Namespace) -> int:
    output = generate_sample_file(args.count, Path(args.output))
    print(f"File {output} created")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from line_server.api.app import create_app

    config = _settings_from_args(args)
    if args.prewarm:
        config = dataclasses.replace(config, prewarm_on_startup=True)
    uvicorn.run(create_app(config=config), host=args.host, port=args.port, log_level=config.log_level.lower())
    return 0


def _add_service_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--file", default="", help="Backing file (default: FILE_PATH)")
    parser.add_argument("--chunk-size", type=int, default=0, help="Lines per index chunk (default: FILE_READER_CHUNK_SIZE)")
    parser.add_argument("--store", choices=["sqlite", "memory"], default="", help="Cache store backend")
    parser.add_argument("--store-path", default="", help="SQLite store file (default: LINE_SERVER_STORE_PATH)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve lines of a large file by index")
    parser.add_argument("--log-level", default="", help="Logging level (default: LINE_SERVER_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    serve = sub.add_parser("serve", help="run the HTTP API")
    _add_service_args(serve)
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--prewarm", action="store_true", help="index the whole file in the background on startup")
    serve.set_defaults(func=cmd_serve)

    fetch = sub.add_parser("fetch", help="print one line using the local index")
    _add_service_args(fetch)
    fetch.add_argument("index", type=int)
    fetch.set_defaults(func=cmd_fetch)

    remote = sub.add_parser("remote", help="print one line from a running server")
    remote.add_argument("index", type=int)
    remote.add_argument("--url", default="", help="Server base URL (default: LINE_SERVER_URL)")
    remote.add_argument("--retries", type=int, default=3)
    remote.set_defaults(func=cmd_remote)

    warm = sub.add_parser("prewarm", help="scan the whole file once and fill the index")
    _add_service_args(warm)
    warm.set_defaults(func=cmd_prewarm)

    status = sub.add_parser("status", help="show index progress")
    _add_service_args(status)
    status.set_defaults(func=cmd_status)

    generate = sub.add_parser("generate", help="write a sample file of numbered lines")
    generate.add_argument("count", type=int)
    generate.add_argument("--output", required=True)
    generate.set_defaults(func=cmd_generate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or None)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
