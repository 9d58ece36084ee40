# tests/core/test_registry.py
import json
import pytest

from vitalswatch.core.exceptions import ConfigurationError
from vitalswatch.core.models import ServerTarget
from vitalswatch.core.registry import ServerRegistry


@pytest.fixture
def servers_file(tmp_path):
    def write(content) -> str:
        path = tmp_path / "servers.json"
        path.write_text(content if isinstance(content, str) else json.dumps(content))
        return str(path)
    return write


def test_load_servers(servers_file):
    registry = ServerRegistry.load(servers_file([
        {"name": "web-01", "url": "http://web-01/vitals"},
        {"name": "db-01", "url": "http://db-01/vitals"}
    ]))

    assert len(registry) == 2
    assert registry[0] == ServerTarget(name="web-01", url="http://web-01/vitals")
    assert [t.name for t in registry] == ["web-01", "db-01"]

def test_duplicate_names_are_kept(servers_file):
    registry = ServerRegistry.load(servers_file([
        {"name": "web", "url": "http://a/vitals"},
        {"name": "web", "url": "http://b/vitals"}
    ]))
    assert len(registry) == 2
    assert {t.url for t in registry} == {"http://a/vitals", "http://b/vitals"}

def test_extra_keys_are_ignored(servers_file):
    registry = ServerRegistry.load(servers_file([
        {"name": "web", "url": "http://a/vitals", "comment": "rack 3"}
    ]))
    assert registry[0].name == "web"

def test_empty_list_is_allowed(servers_file):
    registry = ServerRegistry.load(servers_file([]))
    assert len(registry) == 0
    assert not registry

def test_targets_are_read_only(servers_file):
    registry = ServerRegistry.load(servers_file([{"name": "web", "url": "http://a/vitals"}]))

    assert isinstance(registry.targets, tuple)
    with pytest.raises(Exception):
        registry[0].name = "other"
    assert not hasattr(registry, "append")

def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Cannot read"):
        ServerRegistry.load(tmp_path / "nope.json")

@pytest.mark.parametrize("content", [
    "not json",
    '{"name": "web", "url": "http://a"}',
    '[{"name": "web"}]',
    '[{"name": "web", "url": 42}]',
    '[{"url": "http://a"}]',
    '["http://a"]',
])
def test_malformed_file(servers_file, content):
    with pytest.raises(ConfigurationError, match="Malformed"):
        ServerRegistry.load(servers_file(content))
