"""Tests for registry persistence and shared access."""

import json
import threading
from pathlib import Path

import pytest

from sandhi.registry import (
    AuthMode,
    EndpointGroup,
    EndpointRegistry,
    RegistryLoadError,
    RepositoryEndpoint,
    SharedRegistry,
    load_registry,
    save_registry,
)

SAMPLE_DOCUMENT = {
    "config_name": "work",
    "repositories": [
        {
            "name": "github",
            "url": "https://github.com/acme/widgets.git",
            "auth_type": "token",
            "auth_token": "ghp_x",
            "group": "public",
        },
        {"name": "gitlab", "url": "git@gitlab.com:acme/widgets.git", "auth_type": "ssh", "ssh_key_path": "~/.ssh/gl"},
    ],
    "groups": [{"name": "public", "description": "Mirrors", "repository_names": ["github"]}],
}


class TestLoadRegistry:
    """Tests for load_registry."""

    def test_missing_file_gives_empty_registry(self, tmp_path: Path) -> None:
        """Test a missing document loads as an empty default registry."""
        registry = load_registry(tmp_path / "repos.json")

        assert registry == EndpointRegistry()
        assert registry.config_name == "default"

    def test_load_document(self, tmp_path: Path) -> None:
        """Test the persisted key names are read."""
        path = tmp_path / "repos.json"
        path.write_text(json.dumps(SAMPLE_DOCUMENT))

        registry = load_registry(path)

        assert registry.config_name == "work"
        assert [ep.name for ep in registry.endpoints] == ["github", "gitlab"]
        assert registry.endpoints[0].auth_mode is AuthMode.TOKEN
        assert registry.endpoints[1].auth_mode is AuthMode.SSH_KEY
        assert registry.get_group("public").member_names == ["github"]

    def test_unknown_keys_and_missing_optionals(self, tmp_path: Path) -> None:
        """Test unknown keys are ignored and optional keys defaulted."""
        path = tmp_path / "repos.json"
        path.write_text(json.dumps({"repositories": [{"name": "a", "url": "https://x/a.git", "colour": "red"}]}))

        registry = load_registry(path)

        assert registry.config_name == "default"
        assert registry.endpoints[0].auth_mode is AuthMode.DEFAULT
        assert registry.groups == []

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test a corrupt document raises a load error."""
        path = tmp_path / "repos.json"
        path.write_text("{not json")

        with pytest.raises(RegistryLoadError, match="Failed to load"):
            load_registry(path)

    def test_invalid_document(self, tmp_path: Path) -> None:
        """Test a document with a bad auth mode raises a load error."""
        path = tmp_path / "repos.json"
        path.write_text(json.dumps({"repositories": [{"name": "a", "url": "x", "auth_type": "magic"}]}))

        with pytest.raises(RegistryLoadError):
            load_registry(path)


class TestSaveRegistry:
    """Tests for save_registry."""

    def test_save_uses_document_keys(self, tmp_path: Path) -> None:
        """Test the written document uses the persisted key names."""
        registry = EndpointRegistry(config_name="work")
        registry.add_endpoint(RepositoryEndpoint.with_auth("a", "https://x/a.git", AuthMode.TOKEN, auth_token="t"))
        registry.add_group(EndpointGroup(name="G"))
        registry.add_member("G", "a")
        path = tmp_path / "nested" / "repos.json"

        save_registry(registry, path)

        data = json.loads(path.read_text())
        assert data["config_name"] == "work"
        assert data["repositories"][0]["auth_type"] == "token"
        assert data["repositories"][0]["group"] == "G"
        assert data["groups"][0]["repository_names"] == ["a"]

    def test_saved_document_loads_back(self, tmp_path: Path) -> None:
        """Test a saved registry is read back unchanged."""
        source = tmp_path / "in.json"
        source.write_text(json.dumps(SAMPLE_DOCUMENT))
        registry = load_registry(source)

        save_registry(registry, tmp_path / "out.json")

        assert load_registry(tmp_path / "out.json") == registry


class TestSharedRegistry:
    """Tests for SharedRegistry."""

    def test_snapshot_is_independent(self) -> None:
        """Test edits after a snapshot do not show up in it."""
        shared = SharedRegistry()
        with shared.edit() as registry:
            registry.add_endpoint(RepositoryEndpoint(name="a", url="https://x/a.git"))

        snapshot = shared.snapshot()
        with shared.edit() as registry:
            registry.add_endpoint(RepositoryEndpoint(name="b", url="https://x/b.git"))
        snapshot.endpoints[0].url = "https://changed"

        assert [ep.name for ep in snapshot.endpoints] == ["a"]
        assert shared.snapshot().endpoints[0].url == "https://x/a.git"

    def test_from_file_and_save(self, tmp_path: Path) -> None:
        """Test loading, editing and saving through the shared handle."""
        path = tmp_path / "repos.json"
        path.write_text(json.dumps(SAMPLE_DOCUMENT))
        shared = SharedRegistry.from_file(path)

        with shared.edit() as registry:
            registry.remove_endpoint_by_name("gitlab")
        shared.save(path)

        assert [ep.name for ep in load_registry(path).endpoints] == ["github"]

    def test_concurrent_edits(self) -> None:
        """Test edits from several threads are all applied."""
        shared = SharedRegistry()

        def add(prefix: str) -> None:
            for i in range(25):
                with shared.edit() as registry:
                    registry.add_endpoint(RepositoryEndpoint(name=f"{prefix}{i}", url="https://x/r.git"))

        threads = [threading.Thread(target=add, args=(prefix,)) for prefix in "abcd"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(shared.snapshot().endpoints) == 100
