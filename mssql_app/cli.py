"""
Command line entry point.

Usage:
  mssql-app serve [--host HOST] [--port PORT]
  mssql-app blocks
  mssql-app sync --config app.json
  mssql-app run BLOCK --config app.json [--input input.json]

app.json holds the app config (server, port, database, username, ...);
input.json holds the block's input config. Events are printed as JSON lines.
Config can also be passed as environment JSON via MSSQL_APP_CONFIG.
"""

import argparse
import json
import logging
import os
import sys
from typing import Any

from mssql_app.blocks import BLOCKS, get_block
from mssql_app.core.config import settings
from mssql_app.core.pool import get_pool_manager
from mssql_app.core.sync import sync_app
from mssql_app.definition import describe_app, load_app_config

_log = logging.getLogger(__name__)


def _read_json(path: str | None, env_var: str | None = None) -> dict[str, Any]:
    if path:
        if path == "-":
            raw = sys.stdin.read()
        else:
            with open(path, encoding="utf-8") as fh:
                raw = fh.read()
    elif env_var and os.environ.get(env_var):
        raw = os.environ[env_var]
    else:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def _print(obj: Any) -> None:
    print(json.dumps(obj, default=str))


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("mssql_app.main:app", host=args.host, port=args.port)
    return 0


def cmd_blocks(args: argparse.Namespace) -> int:  # noqa: ARG001
    print(
        json.dumps(
            {"app": describe_app(), "blocks": [b.describe() for b in BLOCKS.values()]},
            indent=2,
        )
    )
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    config = load_app_config(_read_json(args.config, "MSSQL_APP_CONFIG"))
    result = sync_app(config)
    _print(result.model_dump(by_alias=True, exclude_none=True))
    return 0 if result.new_status == "ready" else 1


def cmd_run(args: argparse.Namespace) -> int:
    block = get_block(args.block)
    if block is None:
        print(f"Unknown block: {args.block}. Known: {', '.join(BLOCKS)}", file=sys.stderr)
        return 2
    config = load_app_config(_read_json(args.config, "MSSQL_APP_CONFIG"))
    input_config = _read_json(args.input)
    try:
        block.run(config, input_config, _print)
    finally:
        get_pool_manager().dispose()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mssql-app",
        description="Microsoft SQL Server blocks: serve over HTTP or run one block.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help="Logging level (default from LOG_LEVEL)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default=os.environ.get("HOST", "0.0.0.0"))
    p_serve.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8000")))
    p_serve.set_defaults(func=cmd_serve)

    p_blocks = sub.add_parser("blocks", help="Print app and block declarations")
    p_blocks.set_defaults(func=cmd_blocks)

    p_sync = sub.add_parser("sync", help="Test a connection config")
    p_sync.add_argument("--config", help="App config JSON file ('-' for stdin)")
    p_sync.set_defaults(func=cmd_sync)

    p_run = sub.add_parser("run", help="Run one block and print its events")
    p_run.add_argument("block", help=f"Block id ({', '.join(BLOCKS)})")
    p_run.add_argument("--config", help="App config JSON file ('-' for stdin)")
    p_run.add_argument("--input", help="Block input config JSON file")
    p_run.set_defaults(func=cmd_run)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        return args.func(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        _log.error("Command failed: %s", e, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
