"""
pytest configuration and fixtures for the probe harness tests
Everything runs against the in-memory backend in fake_backend.py
"""

from typing import List

import pytest

from fake_backend import ANON_KEY, SERVICE_KEY, FakeSupabase
from supaprobe.config.settings import ProbeConfig
from supaprobe.config.tables import CRM_TABLES, TABLE_CONFIGS
from supaprobe.core.data_factory import DataFactory
from supaprobe.core.reporter import Reporter
from supaprobe.core.runner import ProbeRunner

PROJECT_URL = "https://demo-project.supabase.co"
DEMO_EMAIL = "demo@probe-test.example.com"
DEMO_PASSWORD = "demo-password-1"


class RecordingReporter(Reporter):
    """Collects callbacks so tests can assert on ordering"""

    def __init__(self):
        self.events: List[tuple] = []

    def sequence_started(self, sequence):
        self.events.append(("started", sequence.name))

    def step_finished(self, result):
        self.events.append(("step", result.name, result.status))

    def sequence_finished(self, result):
        self.events.append(("finished", result.name))

    def run_finished(self, results):
        self.events.append(("run", len(results)))


@pytest.fixture
def backend() -> FakeSupabase:
    """Empty project with every table the probes touch"""
    return FakeSupabase(sorted(set(TABLE_CONFIGS) | set(CRM_TABLES)))


@pytest.fixture
def probe_config() -> ProbeConfig:
    return ProbeConfig(
        supabase_url=PROJECT_URL,
        anon_key=ANON_KEY,
        service_role_key=SERVICE_KEY,
        demo_email=DEMO_EMAIL,
        demo_password=DEMO_PASSWORD,
        request_timeout=5.0,
    )


@pytest.fixture
def anon_only_config(probe_config) -> ProbeConfig:
    probe_config.service_role_key = ""
    return probe_config


@pytest.fixture
def factory(probe_config) -> DataFactory:
    return DataFactory(probe_config, seed=1234)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def runner(probe_config, backend, reporter) -> ProbeRunner:
    return ProbeRunner(probe_config, reporter=reporter, transport=backend.transport)


@pytest.fixture
def probe_env(monkeypatch, tmp_path):
    """Process environment for a fully configured run, isolated from any real .env"""
    monkeypatch.chdir(tmp_path)
    for name in (
        "SUPABASE_URL", "VITE_SUPABASE_URL", "SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY", "PROBE_ENV_FILE", "PROBE_DEMO_EMAIL", "PROBE_DEMO_PASSWORD",
        "PROBE_TEST_PREFIX", "PROBE_REQUEST_TIMEOUT", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    monkeypatch.setenv("SUPABASE_URL", PROJECT_URL)
    monkeypatch.setenv("SUPABASE_ANON_KEY", ANON_KEY)
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", SERVICE_KEY)
    monkeypatch.setenv("PROBE_DEMO_EMAIL", DEMO_EMAIL)
    monkeypatch.setenv("PROBE_DEMO_PASSWORD", DEMO_PASSWORD)
    return tmp_path
