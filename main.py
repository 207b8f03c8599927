#!/usr/bin/env python3
"""
main.py: clapp, supervisor for the local OpenClaw gateway
Usage:
  clapp config set-key [KEY]         # save the Anthropic API key (prompts if omitted)
  clapp config show-key              # show the saved key (masked)
  clapp config history               # backups of ~/.openclaw/openclaw.json
  clapp config rollback [-n N]       # restore a backup (default: latest)
  clapp agents sync ID --name N --prompt P [--key K]
  clapp agents list                  # agents and whether they hold a usable key
  clapp gateway [start]              # start or reuse the gateway (foreground)
  clapp gateway status               # fresh health probe
  clapp gateway stop --force         # kill whatever listens on the gateway port
  clapp chat [--agent ID]            # interactive chat through the gateway
  clapp invoke "message"             # one message, raw JSON reply
  clapp call METHOD --params JSON    # any gateway RPC method
  clapp exec COMMAND...              # diagnostic shell passthrough
  clapp version [--json]
"""

import argparse
import os
import sys


def _setup_logging(verbose: bool):
    from core.errors import SupervisorError
    from core.logging_config import setup_logging
    from core.paths import Paths
    from core.settings import SupervisorOptions, load_options

    paths = Paths.from_env()
    try:
        opts = load_options(paths)
    except (SupervisorError, ValueError):
        # the command itself reports the problem
        opts = SupervisorOptions()
    setup_logging(level=opts.log_level, structured=opts.structured_logs,
                  log_dir=paths.logs_dir, verbose=verbose)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clapp")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show info logs (including gateway output) on the console")
    sub = parser.add_subparsers(dest="cmd")

    p_cfg = sub.add_parser("config", help="API key and gateway config backups")
    p_cfg.add_argument("config_action",
                       choices=["set-key", "show-key", "history", "rollback"])
    p_cfg.add_argument("value", nargs="?", default="", help="API key (set-key)")
    p_cfg.add_argument("--version", "-n", type=int, default=-1,
                       help="Backup index for rollback (-1 = latest)")

    p_agents = sub.add_parser("agents", help="Agent credentials and identity")
    agents_sub = p_agents.add_subparsers(dest="agents_cmd")
    agents_sub.add_parser("list", help="List agents")
    p_sync = agents_sub.add_parser("sync", help="Write credentials + identity (mirrored to main)")
    p_sync.add_argument("agent_id")
    p_sync.add_argument("--name", default="", help="Display name (default: agent id)")
    p_sync.add_argument("--prompt", default="", help="System prompt / instructions")
    p_sync.add_argument("--key", default="", help="API key (default: saved key)")

    p_gw = sub.add_parser("gateway", help="Gateway lifecycle")
    p_gw.add_argument("action", nargs="?", default="start",
                      choices=["start", "stop", "status"],
                      help="Gateway action (default: start)")
    p_gw.add_argument("--agent", default="main", help="Agent to provision before start")
    p_gw.add_argument("--force", action="store_true",
                      help="stop: kill whatever listens on the gateway port")

    p_chat = sub.add_parser("chat", help="Interactive chat")
    p_chat.add_argument("--agent", default="main")
    p_chat.add_argument("--session", default="", help="Session key (default: random)")

    p_inv = sub.add_parser("invoke", help="Send one message to the agent")
    p_inv.add_argument("message")
    p_inv.add_argument("--agent", default="main")
    p_inv.add_argument("--session", default="cli")

    p_call = sub.add_parser("call", help="Call any gateway RPC method")
    p_call.add_argument("method")
    p_call.add_argument("--params", default="{}", help="JSON object")

    p_exec = sub.add_parser("exec", help="Run a diagnostic shell command")
    p_exec.add_argument("command", nargs=argparse.REMAINDER)

    p_ver = sub.add_parser("version", help="Version and dependency info")
    p_ver.add_argument("--json", action="store_true")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd is None:
        parser.print_help()
        return 0

    _setup_logging(args.verbose)

    from cli import dispatch_command
    dispatch_command(args, parser)
    return 0


if __name__ == "__main__":
    root = os.path.dirname(os.path.abspath(__file__))
    if root not in sys.path:
        sys.path.insert(0, root)
    sys.exit(main())
