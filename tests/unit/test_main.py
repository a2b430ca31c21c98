# tests/unit/test_main.py v2
"""Tests for main.py: CLI entry point."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock, patch

import pytest

from secureproxy.llm.errors import RateLimitExceeded
from secureproxy.main import _build_parser, _resolve_image_ref, main


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self, capsys):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_complete_subcommand(self):
        args = _build_parser().parse_args(["complete", "hello", "--model", "gpt-4o-mini"])
        assert args.command == "complete"
        assert args.prompt == "hello"
        assert args.model == "gpt-4o-mini"
        assert args.max_tokens is None

    def test_vision_subcommand(self):
        args = _build_parser().parse_args(["vision", "what?", "https://img/x.png"])
        assert args.image == "https://img/x.png"
        assert args.model is None

    def test_chat_subcommand(self):
        args = _build_parser().parse_args(["chat", "--system", "be brief"])
        assert args.system == "be brief"

    def test_compare_requires_models(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["compare", "hi"])

    def test_compare_repeatable_model(self):
        args = _build_parser().parse_args(["compare", "hi", "-m", "a", "-m", "b"])
        assert args.models == ["a", "b"]


# ---------------------------------------------------------------------------
# Image reference resolution
# ---------------------------------------------------------------------------

class TestResolveImageRef:
    def test_url_passthrough(self):
        assert _resolve_image_ref("https://img/x.png") == "https://img/x.png"

    def test_local_file_becomes_data_url(self, tmp_path):
        img = tmp_path / "pic.png"
        img.write_bytes(b"\x89PNG")
        ref = _resolve_image_ref(str(img))
        assert ref.startswith("data:image/png;base64,")
        assert base64.b64decode(ref.split(",", 1)[1]) == b"\x89PNG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            _resolve_image_ref(str(tmp_path / "nope.jpg"))


# ---------------------------------------------------------------------------
# main() exit codes
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1

    def test_missing_proxy_key_is_config_error(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("SECUREPROXY_PROXY_KEY", raising=False)
        monkeypatch.delenv("SECUREPROXY_SECRET_KEY", raising=False)
        assert main(["complete", "hi"]) == 2

    def test_invalid_settings_is_config_error(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SECUREPROXY_BASE_URL", "ftp://nope")
        assert main(["complete", "hi"]) == 2

    def test_complete_prints_answer(self, monkeypatch, tmp_path, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SECUREPROXY_PROXY_KEY", "pk_test")
        with patch(
            "secureproxy.client.proxy_client.SecureProxyClient.complete",
            new=AsyncMock(return_value="hi there"),
        ):
            assert main(["complete", "hello"]) == 0
        assert "hi there" in capsys.readouterr().out

    def test_sdk_error_exit_code(self, monkeypatch, tmp_path, capsys):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SECUREPROXY_PROXY_KEY", "pk_test")
        with patch(
            "secureproxy.client.proxy_client.SecureProxyClient.complete",
            new=AsyncMock(side_effect=RateLimitExceeded()),
        ):
            assert main(["complete", "hello"]) == 1
        assert "rate_limit_exceeded" in capsys.readouterr().err
