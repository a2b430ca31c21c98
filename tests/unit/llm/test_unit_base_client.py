# tests/unit/llm/test_unit_base_client.py v2
"""Tests for llm/base_client.py: BaseChatClient ABC is not instantiable."""

from __future__ import annotations

import pytest

from secureproxy.client.proxy_client import SecureProxyClient
from secureproxy.llm.base_client import BaseChatClient


class TestBaseChatClient:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BaseChatClient()  # type: ignore[abstract]

    def test_has_required_methods(self):
        assert hasattr(BaseChatClient, "chat_completion")
        assert hasattr(BaseChatClient, "complete")
        assert hasattr(BaseChatClient, "vision")

    def test_proxy_client_implements_interface(self):
        assert issubclass(SecureProxyClient, BaseChatClient)
