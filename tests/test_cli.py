"""
tests/test_cli.py
Argument parsing, reply extraction, helpers and the commands that need no gateway.
"""

import json

import pytest

from cli.chat import extract_reply
from cli.helpers import get_version, mask_secret
from core.config_store import load_api_key, read_document
from main import build_parser, main


class TestParser:

    def test_gateway_defaults(self):
        args = build_parser().parse_args(["gateway"])
        assert (args.cmd, args.action, args.agent, args.force) == ("gateway", "start", "main", False)

    def test_config_rollback_version(self):
        args = build_parser().parse_args(["config", "rollback", "--version", "-2"])
        assert args.config_action == "rollback"
        assert args.version == -2

    def test_exec_remainder(self):
        args = build_parser().parse_args(["exec", "npx", "openclaw", "--version"])
        assert args.command == ["npx", "openclaw", "--version"]

    def test_agents_sync(self):
        args = build_parser().parse_args(
            ["agents", "sync", "agent7", "--name", "Bot", "--prompt", "be helpful"])
        assert (args.agents_cmd, args.agent_id, args.name, args.prompt) == \
            ("sync", "agent7", "Bot", "be helpful")

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: clapp" in capsys.readouterr().out


class TestExtractReply:

    def test_payload_texts(self):
        raw = json.dumps({"result": {"payloads": [{"text": "Hello"}, {"text": "World"}]}})
        assert extract_reply(raw) == "Hello\n\nWorld"

    def test_flat_text(self):
        assert extract_reply('{"reply": "hi there"}') == "hi there"

    @pytest.mark.parametrize("raw", ["plain words", "[1, 2]", '{"result": {"runId": "r1"}}'])
    def test_falls_back_to_raw(self, raw):
        assert extract_reply(raw) == raw


class TestHelpers:

    def test_mask_secret(self):
        assert mask_secret("") == ""
        assert mask_secret("short") == "***"
        assert mask_secret("sk-ant-api03-abcdefgh1234") == "sk-ant...1234"

    def test_version_is_semver_like(self):
        assert len(get_version().split(".")) >= 2


# ══════════════════════════════════════════════════════════════════════════════
#  COMMANDS (no gateway needed)
# ══════════════════════════════════════════════════════════════════════════════

class TestCommands:

    def test_set_and_show_key(self, paths, capsys, restore_logging):
        main(["config", "set-key", "sk-ant-api03-abcdefgh1234"])
        assert load_api_key(paths) == "sk-ant-api03-abcdefgh1234"

        main(["config", "show-key"])
        out = capsys.readouterr().out
        assert "sk-ant...1234" in out
        assert "abcdefgh" not in out

    def test_agents_sync_uses_saved_key(self, paths, api_key, restore_logging):
        main(["agents", "sync", "agent7", "--name", "Bot"])
        cred = read_document(paths.auth_profiles("main"))
        assert cred["profiles"]["anthropic:default"]["key"] == api_key
        assert read_document(paths.agent_identity("agent7"))["name"] == "Bot"

    def test_agents_sync_without_key_exits(self, paths, restore_logging):
        with pytest.raises(SystemExit) as exc:
            main(["agents", "sync", "agent7"])
        assert exc.value.code == 1

    def test_invoke_without_config_exits(self, paths, restore_logging):
        with pytest.raises(SystemExit) as exc:
            main(["invoke", "hello"])
        assert exc.value.code == 1

    def test_call_rejects_array_params(self, paths, capsys, restore_logging):
        from core.tokens import ensure_gateway_config
        ensure_gateway_config(paths)
        with pytest.raises(SystemExit):
            main(["call", "health", "--params", "[1]"])
        assert "JSON object" in capsys.readouterr().out

    def test_version_json(self, capsys, paths, restore_logging):
        main(["version", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert set(data) == {"version", "python", "npx", "dependencies"}
        assert "httpx" in data["dependencies"]
