"""ConfigManager defaults, YAML overrides and validation."""

import pytest

from config import ConfigManager


def write_yaml(tmp_path, text):
    path = tmp_path / "settings.yaml"
    path.write_text(text)
    return str(path)


def test_defaults_without_file():
    config = ConfigManager()
    assert config.database == "pubmed"
    assert config.use_history is False
    assert config.retmode == "xml"
    assert config.verbose is False
    assert config.tool
    assert config.email
    assert config.max_retrieval == 1
    assert config.max_error_count == 4
    assert config.rate_limit == 3


def test_yaml_overrides_merge_with_defaults(tmp_path):
    path = write_yaml(tmp_path, """
eutils:
  email: lab@example.org
  api_key: abc123
automate:
  max_retrieval: 25
""")
    config = ConfigManager(path)

    assert config.email == "lab@example.org"
    assert config.api_key == "abc123"
    assert config.rate_limit == 10
    assert config.max_retrieval == 25
    assert config.max_error_count == 4
    assert config.database == "pubmed"


def test_blank_api_key_treated_as_missing(tmp_path):
    config = ConfigManager(write_yaml(tmp_path, "eutils:\n  api_key: ''\n"))
    assert config.api_key is None
    assert config.rate_limit == 3


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "nope.yaml"))


def test_empty_file(tmp_path):
    with pytest.raises(ValueError):
        ConfigManager(write_yaml(tmp_path, ""))


def test_template_email_rejected(tmp_path):
    with pytest.raises(ValueError):
        ConfigManager(write_yaml(tmp_path, "eutils:\n  email: your.email@example.com\n"))


@pytest.mark.parametrize("key,value", [
    ("max_retrieval", 0),
    ("max_retrieval", 101),
    ("max_error_count", 0),
])
def test_out_of_range_automate_settings(tmp_path, key, value):
    with pytest.raises(ValueError):
        ConfigManager(write_yaml(tmp_path, f"automate:\n  {key}: {value}\n"))


def test_dotted_get_and_set():
    config = ConfigManager()
    config.set("extra.nested.value", 7)
    assert config.get("extra.nested.value") == 7
    assert config.get("extra.missing", "fallback") == "fallback"
