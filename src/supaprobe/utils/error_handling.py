"""
Error types and log sanitizing for the probe harness.

API-level failures are returned as values (see ``models.results.APIError``);
the exceptions below cover problems that stop a run before or while it
executes.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """Base class for harness errors"""


class ConfigurationError(ProbeError):
    """Raised when required settings are missing or malformed"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Configuration errors: {', '.join(self.errors)}")


class MissingCredentialError(ConfigurationError):
    """Raised when a sequence needs a key tier that is not configured"""

    def __init__(self, sequence: str, tier: str, env_var: str):
        self.sequence = sequence
        self.tier = tier
        self.env_var = env_var
        super().__init__([f"probe '{sequence}' needs the {tier} key ({env_var} is not set)"])


class UnknownProbeError(ProbeError):
    """Raised when a probe name is not in the catalogue"""

    def __init__(self, name: str, available: List[str]):
        self.name = name
        self.available = available
        super().__init__(f"Unknown probe: {name} (available: {', '.join(available)})")


class UnresolvedReferenceError(ProbeError):
    """Raised when a ${name.field} reference has no saved value"""

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Unresolved reference: ${{{reference}}}")


class ErrorHandlingConfig:
    """Settings for what may appear in logs"""

    SANITIZE_SENSITIVE_FIELDS = True
    SENSITIVE_FIELD_PATTERNS = [
        'password', 'token', 'key', 'secret', 'authorization',
        'bearer', 'credential', 'apikey'
    ]
    MAX_BODY_LOG_SIZE = 2000

    @classmethod
    def is_sensitive_field(cls, field_name: str) -> bool:
        """Check if a field contains sensitive data"""
        field_lower = field_name.lower()
        return any(pattern in field_lower for pattern in cls.SENSITIVE_FIELD_PATTERNS)

    @classmethod
    def sanitize_data(cls, data: Union[Dict, List, str, Any]) -> Any:
        """Recursively redact sensitive values before logging"""
        if not cls.SANITIZE_SENSITIVE_FIELDS:
            return data

        if isinstance(data, dict):
            return {
                key: "***REDACTED***" if cls.is_sensitive_field(str(key)) else cls.sanitize_data(value)
                for key, value in data.items()
            }
        elif isinstance(data, list):
            return [cls.sanitize_data(item) for item in data]
        elif isinstance(data, str) and len(data) > cls.MAX_BODY_LOG_SIZE:
            return data[:cls.MAX_BODY_LOG_SIZE] + "...[TRUNCATED]"
        else:
            return data


sanitize_data = ErrorHandlingConfig.sanitize_data


def log_exception(
    error_type: str,
    message: str,
    exception: Optional[BaseException] = None,
    extra_context: Optional[Dict[str, Any]] = None
) -> str:
    """Log a structured error entry and return its trace id"""
    trace_id = str(uuid.uuid4())[:8]

    log_entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "trace_id": trace_id,
        "error_type": error_type,
        "message": message,
    }

    if exception is not None:
        log_entry["exception"] = {
            "type": type(exception).__name__,
            "details": str(exception),
        }

    if extra_context:
        log_entry["context"] = sanitize_data(extra_context)

    logger.error(json.dumps(log_entry, default=str), exc_info=exception)
    return trace_id
