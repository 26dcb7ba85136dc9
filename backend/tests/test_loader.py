"""Tests for the workflow loader: templating, YAML parsing and validation."""

import pytest

from dashpipe.core.constants import HttpMethod, Medium, StepKind
from dashpipe.pipeline.errors import ConfigError, PipelineError
from dashpipe.pipeline.loader import load_config, parse_config, render_config


WORKFLOW = """\
env:
  REGION: eu
steps:
  - name: fetch
    read:
      https:
        url: ${{ env.API_URL }}/items
        method: Post
        headers:
          Authorization: Bearer ${{ env.TOKEN }}
  - run: ./transform.sh
    env:
      LIMIT: 10
  - write:
      file:
        location: out.json
"""


def test_render_replaces_env_placeholders():
    rendered = render_config("url: ${{ env.HOST }}:${{env.PORT}}\n", {"HOST": "db", "PORT": "5432"})
    assert rendered == "url: db:5432\n"


def test_render_undefined_variable_is_empty():
    assert render_config("token: '${{ env.MISSING }}'", {}) == "token: ''"


def test_render_reads_process_environment_by_default(monkeypatch):
    monkeypatch.setenv("DASH_TEST_VALUE", "from-env")
    assert render_config("${{ env.DASH_TEST_VALUE }}") == "from-env"


def test_render_template_error_is_config_error():
    with pytest.raises(ConfigError):
        render_config("${{ env.A | no_such_filter }}", {"A": "x"})


def test_parse_full_workflow():
    config = parse_config(WORKFLOW, {"API_URL": "https://api.example.com", "TOKEN": "t0k"})

    assert config.env == {"REGION": "eu"}
    assert [s.kind for s in config.steps] == [StepKind.READ, StepKind.RUN, StepKind.WRITE]
    assert [s.medium for s in config.steps] == [Medium.HTTP, Medium.PROCESS, Medium.FILE]

    fetch = config.steps[0].connection
    assert fetch.url == "https://api.example.com/items"
    assert fetch.method == HttpMethod.POST
    assert fetch.headers == {"Authorization": "Bearer t0k"}
    assert config.steps[1].env == {"LIMIT": "10"}


def test_invalid_yaml_is_config_error():
    with pytest.raises(ConfigError, match="not valid YAML"):
        parse_config("steps: [\n", {})


@pytest.mark.parametrize("text", ["", "- run: a\n", "just text\n"])
def test_non_mapping_root_is_config_error(text):
    with pytest.raises(ConfigError, match="root must be a mapping"):
        parse_config(text, {})


def test_schema_error_names_the_field():
    with pytest.raises(ConfigError) as excinfo:
        parse_config("steps:\n  - read:\n      file: {}\n", {})

    assert "steps.0.read.file.location" in str(excinfo.value)
    assert isinstance(excinfo.value, PipelineError)


def test_non_ascii_header_is_config_error():
    text = "steps:\n  - read:\n      http:\n        url: https://example.com\n        headers: {X-Name: café}\n"

    with pytest.raises(ConfigError, match="must be ASCII"):
        parse_config(text, {})


def test_missing_steps_is_config_error():
    with pytest.raises(ConfigError):
        parse_config("env: {}\n", {})


def test_load_config_from_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("steps:\n  - run: ${{ env.PROGRAM }}\n")

    config = load_config(path, {"PROGRAM": "/bin/true"})

    assert config.steps[0].run == "/bin/true"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Unable to read config file"):
        load_config(tmp_path / "missing.yml", {})
