from __future__ import annotations

import json
import textwrap

import pytest
from pydantic import ValidationError

from restic_monitor.config import (
    ConfigError,
    RepositoryConfig,
    RetentionPolicy,
    load_config,
    parse_config,
    parse_duration,
    read_dry_run,
    resolve_environment,
)


@pytest.mark.parametrize(
    "value,seconds",
    [
        ("1h", 3600.0),
        ("1h30m", 5400.0),
        ("90s", 90.0),
        ("500ms", 0.5),
        ("1.5m", 90.0),
        ("300", 300.0),
        (45, 45.0),
        (2.5, 2.5),
    ],
)
def test_parse_duration(value, seconds):
    assert parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["", "  ", "h", "10x", "1h 30m", "m5", True])
def test_parse_duration_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_retention_args_order_and_zero_means_unset():
    policy = RetentionPolicy(last_n=5, hourly=0, daily=7, weekly=4, monthly=12, yearly=2, tags=["keep", "pin"])
    assert policy.to_args() == [
        "--keep-last", "5",
        "--keep-daily", "7",
        "--keep-weekly", "4",
        "--keep-monthly", "12",
        "--keep-yearly", "2",
        "--keep-tag", "keep",
        "--keep-tag", "pin",
    ]
    assert RetentionPolicy().to_args() == []


def test_retention_accepts_lastn_spelling_and_rejects_unknown_keys():
    assert RetentionPolicy.model_validate({"lastn": 3}).last_n == 3
    with pytest.raises(ValidationError):
        RetentionPolicy.model_validate({"keep_daily": 3})
    with pytest.raises(ValidationError):
        RetentionPolicy.model_validate({"daily": -1})


def _repo(**overrides):
    data = {"repository": "/srv/restic", "polling_interval": "1h", "maintenance_schedule": "@daily"}
    data.update(overrides)
    return RepositoryConfig.model_validate(data)


def test_repository_config_parses_interval_and_null_sections():
    cfg = _repo(environment=None, retention=None)
    assert cfg.polling_interval == 3600.0
    assert cfg.environment == {}
    assert cfg.retention == RetentionPolicy()


@pytest.mark.parametrize("interval", ["0s", 0, "-5", "soon"])
def test_repository_config_rejects_bad_interval(interval):
    with pytest.raises(ValidationError):
        _repo(polling_interval=interval)


def test_inline_environment_wins_over_file(tmp_path):
    env_file = tmp_path / "env.json"
    env_file.write_text(json.dumps({"RESTIC_PASSWORD": "from-file", "AWS_ACCESS_KEY_ID": "AKIA"}), encoding="utf-8")
    cfg = _repo(environment={"RESTIC_PASSWORD": "inline", "B2_ACCOUNT_ID": 1234}, environment_file=str(env_file))

    assert resolve_environment(cfg) == {
        "RESTIC_PASSWORD": "inline",
        "AWS_ACCESS_KEY_ID": "AKIA",
        "B2_ACCOUNT_ID": "1234",
    }


def test_environment_file_must_be_a_string_object(tmp_path):
    env_file = tmp_path / "env.json"
    env_file.write_text(json.dumps(["not", "an", "object"]), encoding="utf-8")
    with pytest.raises(ValueError):
        resolve_environment(_repo(environment_file=str(env_file)))

    with pytest.raises(OSError):
        resolve_environment(_repo(environment_file=str(tmp_path / "missing.json")))


def test_load_config_skips_invalid_repository(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        textwrap.dedent(
            """\
            repos:
              nas:
                repository: sftp:backup@nas:/srv/restic
                environment:
                  RESTIC_PASSWORD_FILE: /etc/restic-monitor/nas.pass
                retention:
                  lastn: 10
                  daily: 7
                polling_interval: 30m
                maintenance_schedule: "30 3 * * *"
              broken:
                repository: /srv/other
                polling_interval: 0s
                maintenance_schedule: "@daily"
            """
        ),
        encoding="utf-8",
    )

    loaded = load_config(path)

    assert list(loaded.repos) == ["nas"]
    assert set(loaded.errors) == {"broken"}
    nas = loaded.repos["nas"]
    assert nas.polling_interval == 1800.0
    assert nas.retention.to_args() == ["--keep-last", "10", "--keep-daily", "7"]


def test_empty_document_has_no_repositories():
    assert parse_config(None).repos == {}
    assert parse_config({"repos": None}).repos == {}


@pytest.mark.parametrize("data", [["a"], {"repos": ["a"]}])
def test_malformed_document_raises_config_error(data):
    with pytest.raises(ConfigError):
        parse_config(data)


def test_unreadable_or_invalid_yaml_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")
    bad = tmp_path / "bad.yaml"
    bad.write_text("repos: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(bad)


def test_dry_run_flag():
    assert read_dry_run({"DRY_RUN": "1"}) is True
    assert read_dry_run({"DRY_RUN": ""}) is False
    assert read_dry_run({}) is False


def test_dry_run_reads_process_environment(monkeypatch):
    monkeypatch.setenv("DRY_RUN", "yes")
    assert read_dry_run() is True
    monkeypatch.delenv("DRY_RUN")
    assert read_dry_run() is False
