"""
Probe harness configuration

Connection parameters come from the process environment, falling back to a
key=value env file. Names used by the front-end build (VITE_*) are accepted
as aliases so the same .env can be shared.
"""

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values

from supaprobe.core.keys import describe_key
from supaprobe.utils.error_handling import ConfigurationError, MissingCredentialError

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"

# Canonical variable -> accepted aliases, first match wins
ENV_ALIASES: Dict[str, List[str]] = {
    "SUPABASE_URL": ["SUPABASE_URL", "VITE_SUPABASE_URL"],
    "SUPABASE_ANON_KEY": ["SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"],
    "SUPABASE_SERVICE_ROLE_KEY": ["SUPABASE_SERVICE_ROLE_KEY"],
}

KEY_TIER_ENV = {
    "anon": "SUPABASE_ANON_KEY",
    "service": "SUPABASE_SERVICE_ROLE_KEY",
}


def load_environment(env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Merge the env file with the process environment (process wins)"""
    environ = os.environ if environ is None else environ
    path = Path(env_file or environ.get("PROBE_ENV_FILE") or DEFAULT_ENV_FILE)

    values: Dict[str, str] = {}
    if path.is_file():
        values.update({k: v for k, v in dotenv_values(path).items() if v is not None})
        logger.debug(f"Loaded {len(values)} values from {path}")
    elif env_file:
        logger.warning(f"Env file not found: {path}")

    values.update({k: v for k, v in environ.items() if v is not None})
    return values


def _lookup(values: Mapping[str, str], name: str) -> str:
    for alias in ENV_ALIASES.get(name, [name]):
        value = (values.get(alias) or "").strip()
        if value:
            return value
    return ""


@dataclass
class ProbeConfig:
    """Connection and behaviour settings for a probe run"""

    supabase_url: str = ""
    anon_key: str = ""
    service_role_key: str = ""

    # Demo account for sign-in probes
    demo_email: str = ""
    demo_password: str = ""

    # Marker written into scratch records
    test_data_prefix: str = "PROBE_TEST"
    scratch_email_domain: str = "probe-test.example.com"

    request_timeout: float = 30.0
    log_level: str = "WARNING"

    extra: Dict[str, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_environment(cls, env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "ProbeConfig":
        values = load_environment(env_file, environ)

        timeout_raw = values.get("PROBE_REQUEST_TIMEOUT", "30")
        try:
            timeout = float(timeout_raw)
        except ValueError:
            timeout = -1.0

        return cls(
            supabase_url=_lookup(values, "SUPABASE_URL").rstrip("/"),
            anon_key=_lookup(values, "SUPABASE_ANON_KEY"),
            service_role_key=_lookup(values, "SUPABASE_SERVICE_ROLE_KEY"),
            demo_email=values.get("PROBE_DEMO_EMAIL", "").strip(),
            demo_password=values.get("PROBE_DEMO_PASSWORD", ""),
            test_data_prefix=values.get("PROBE_TEST_PREFIX", "").strip() or "PROBE_TEST",
            request_timeout=timeout,
            log_level=values.get("LOG_LEVEL", "WARNING").upper(),
            extra={k: v for k, v in values.items() if k.startswith("PROBE_")},
        )

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if not self.supabase_url:
            errors.append("SUPABASE_URL is required")
        elif not self.supabase_url.startswith(("https://", "http://")):
            errors.append(f"SUPABASE_URL must be an http(s) URL, got {self.supabase_url!r}")

        if not self.anon_key:
            errors.append("SUPABASE_ANON_KEY is required")

        if not math.isfinite(self.request_timeout) or self.request_timeout <= 0:
            errors.append("PROBE_REQUEST_TIMEOUT must be a positive number of seconds")

        return errors

    def warnings(self) -> List[str]:
        """Non-fatal problems worth printing before a run"""
        notes = []
        if self.anon_key:
            info = describe_key(self.anon_key)
            if info.role == "service_role":
                notes.append("SUPABASE_ANON_KEY holds a service_role key; row level security is bypassed")
            if info.expired:
                notes.append("SUPABASE_ANON_KEY has expired")
        if self.service_role_key:
            info = describe_key(self.service_role_key)
            if info.role and info.role != "service_role":
                notes.append(f"SUPABASE_SERVICE_ROLE_KEY has role '{info.role}', admin calls will be refused")
            if info.expired:
                notes.append("SUPABASE_SERVICE_ROLE_KEY has expired")
        return notes

    def key_for(self, tier: str) -> str:
        if tier == "service":
            return self.service_role_key
        return self.anon_key

    def require_tiers(self, sequence_name: str, tiers) -> None:
        """Fail fast when a sequence needs a key that is not configured"""
        for tier in sorted(tiers):
            if not self.key_for(tier):
                raise MissingCredentialError(sequence_name, tier, KEY_TIER_ENV[tier])

    @property
    def demo_credentials_configured(self) -> bool:
        return bool(self.demo_email and self.demo_password)

    def require_demo_credentials(self, sequence_name: str) -> None:
        if not self.demo_credentials_configured:
            raise ConfigurationError(
                [f"probe '{sequence_name}' needs PROBE_DEMO_EMAIL and PROBE_DEMO_PASSWORD"]
            )


def get_config(env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> ProbeConfig:
    """Get validated probe configuration"""
    config = ProbeConfig.from_environment(env_file, environ)
    errors = config.validate()

    if errors:
        raise ConfigurationError(errors)

    for note in config.warnings():
        logger.warning(note)

    return config
