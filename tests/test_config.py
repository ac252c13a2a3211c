"""Tests for Settings configuration model."""

from pathlib import Path

from grambharat.config import Settings
from grambharat.llm.client import OllamaClient
from grambharat.main import build_controller


class TestDefaults:
    def test_inference_defaults(self):
        s = Settings()
        assert s.ollama_base_url == "http://localhost:11434"
        assert s.default_model == "gpt-oss:20b"
        assert s.ollama_connect_timeout == 10.0

    def test_server_defaults(self):
        s = Settings()
        assert s.host == "0.0.0.0"
        assert s.port == 3000
        assert s.cors_allow_origin == "*"

    def test_storage_defaults(self):
        s = Settings()
        assert s.data_dir == Path("data")
        assert s.profiles_dir == Path("data/financial-profiles")

    def test_log_defaults(self):
        s = Settings()
        assert s.log_level == "INFO"
        assert s.log_dir == Path("logs")


class TestDerivedPaths:
    def test_paths_follow_data_dir(self, tmp_path):
        s = Settings(data_dir=tmp_path)
        assert s.chats_dir == tmp_path / "chats"
        assert s.memory_path == tmp_path / "memories.json"
        assert s.context_path == tmp_path / "context.json"


class TestOverrides:
    def test_init_values_win(self):
        s = Settings(default_model="llama3.2", port=8080)
        assert s.default_model == "llama3.2"
        assert s.port == 8080


async def test_build_controller_wires_stores(tmp_path):
    s = Settings(data_dir=tmp_path, profiles_dir=tmp_path / "profiles", default_model="m")
    client = OllamaClient(s.ollama_base_url)
    try:
        controller = build_controller(s, client)

        assert controller.default_model == "m"
        assert controller.client is client
        assert controller.chats.root == tmp_path / "chats"
        assert controller.memories.path == tmp_path / "memories.json"
        assert controller.contexts.path == tmp_path / "context.json"
        assert controller.profiles.root == tmp_path / "profiles"
        assert controller.tool_context.memory_store is controller.memories
    finally:
        await client.aclose()
