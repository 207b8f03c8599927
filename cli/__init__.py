"""CLI dispatcher: lazy-loads command modules on demand."""
from __future__ import annotations


def dispatch_command(args, parser=None):
    """Route args.cmd to the appropriate cli module, importing only on use."""
    cmd = getattr(args, "cmd", None)

    if cmd == "gateway":
        from cli.gateway_cmd import cmd_gateway
        cmd_gateway(action=args.action, agent=args.agent, force=args.force)

    elif cmd == "config":
        from cli.config_cmd import cmd_config
        cmd_config(action=args.config_action, value=args.value or "",
                   version=args.version)

    elif cmd == "agents":
        if args.agents_cmd == "sync":
            from cli.agents_cmd import cmd_agents_sync
            cmd_agents_sync(args.agent_id, name=args.name, prompt=args.prompt,
                            key=args.key)
        else:
            from cli.agents_cmd import cmd_agents_list
            cmd_agents_list()

    elif cmd == "chat":
        from cli.chat import cmd_chat
        cmd_chat(agent=args.agent, session=args.session)

    elif cmd == "invoke":
        from cli.call_cmd import cmd_invoke
        cmd_invoke(args.message, agent=args.agent, session=args.session)

    elif cmd == "call":
        from cli.call_cmd import cmd_call
        cmd_call(args.method, params=args.params)

    elif cmd == "exec":
        from cli.call_cmd import cmd_exec
        cmd_exec(" ".join(args.command))

    elif cmd == "version":
        from cli.version_cmd import cmd_version
        cmd_version(json_output=getattr(args, "json", False))

    elif parser is not None:
        parser.print_help()
