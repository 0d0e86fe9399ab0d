from __future__ import annotations

import pytest

from restic_monitor.base.cancellation import CancellationToken
from restic_monitor.config import DEFAULT_CONFIG_PATH, DEFAULT_LISTEN_PORT, RepositoryConfig
from restic_monitor.monitor.poller import PollerState
from restic_monitor.service.main import build_arg_parser, build_repository, main


def _config(**overrides):
    data = {
        "repository": "/srv/restic",
        "environment": {"RESTIC_PASSWORD": "pw"},
        "retention": {"daily": 7},
        "polling_interval": "15m",
        "maintenance_schedule": "30 3 * * *",
    }
    data.update(overrides)
    return RepositoryConfig.model_validate(data)


def test_build_repository_wires_components(metrics, fake_restic):
    repo = build_repository("nas", _config(), metrics=metrics, token=CancellationToken(), executable=fake_restic)

    assert repo.name == "nas"
    assert repo.client.name == "nas"
    assert repo.poller.interval == 900.0
    assert repo.poller.state is PollerState.IDLE
    assert repo.schedule.expression == "30 3 * * *"
    assert repo.job.name == "maintenance-nas"


def test_build_repository_rejects_bad_schedule(metrics):
    with pytest.raises(ValueError):
        build_repository("nas", _config(maintenance_schedule="every tuesday"), metrics=metrics, token=CancellationToken())


def test_build_repository_rejects_missing_environment_file(metrics, tmp_path):
    cfg = _config(environment_file=str(tmp_path / "absent.json"))
    with pytest.raises(OSError):
        build_repository("nas", cfg, metrics=metrics, token=CancellationToken())


def test_arg_parser_defaults():
    args = build_arg_parser().parse_args([])
    assert args.config == DEFAULT_CONFIG_PATH
    assert args.port == DEFAULT_LISTEN_PORT
    assert args.log_file is None


def test_unreadable_config_exits_non_zero(tmp_path):
    assert main([str(tmp_path / "missing.yaml")]) == 1
