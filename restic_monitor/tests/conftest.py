"""Shared fixtures for the restic_monitor test suite.

``fake_restic`` writes a small Python program named ``restic`` into
``tmp_path``. Its behaviour is driven by environment variables, which tests
pass through the command runner's per-repository environment overlay:

* ``FAKE_RESTIC_STDOUT`` / ``FAKE_RESTIC_STDERR``: text to print
* ``FAKE_RESTIC_EXIT``: exit status (default 0)
* ``FAKE_RESTIC_SLEEP``: seconds to sleep before exiting
* ``FAKE_RESTIC_LOG``: file that receives one JSON line per invocation
  (argv, selected environment, start and end timestamps)
"""

from __future__ import annotations

import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from restic_monitor.base.metrics import MonitorMetrics
from restic_monitor.base.timeouts import TimeoutConfig, reset_timeout_config

_FAKE_RESTIC = textwrap.dedent(
    """\
    #!{python}
    import json
    import os
    import sys
    import time

    started = time.time()
    stdout = os.environ.get("FAKE_RESTIC_STDOUT", "")
    stderr = os.environ.get("FAKE_RESTIC_STDERR", "")
    sleep = float(os.environ.get("FAKE_RESTIC_SLEEP", "0") or 0)
    code = int(os.environ.get("FAKE_RESTIC_EXIT", "0") or 0)
    if sleep:
        time.sleep(sleep)
    log = os.environ.get("FAKE_RESTIC_LOG")
    if log:
        entry = {{
            "argv": sys.argv[1:],
            "repository": os.environ.get("RESTIC_REPOSITORY"),
            "password": os.environ.get("RESTIC_PASSWORD"),
            "start": started,
            "end": time.time(),
        }}
        with open(log, "a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry) + "\\n")
    sys.stdout.write(stdout)
    sys.stderr.write(stderr)
    sys.exit(code)
    """
)


@pytest.fixture()
def fake_restic(tmp_path: Path) -> str:
    """Path to an executable fake ``restic``."""
    path = tmp_path / "restic"
    path.write_text(_FAKE_RESTIC.format(python=sys.executable), encoding="utf-8")
    os.chmod(path, stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
    return str(path)


@pytest.fixture()
def metrics() -> MonitorMetrics:
    return MonitorMetrics()


@pytest.fixture()
def fast_timeouts() -> TimeoutConfig:
    return TimeoutConfig(command_timeout_seconds=None, terminate_grace_seconds=2.0, poll_interval_seconds=0.02)


@pytest.fixture(autouse=True)
def _fresh_timeout_cache():
    reset_timeout_config()
    yield
    reset_timeout_config()
