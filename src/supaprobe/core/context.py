"""
Values saved by earlier steps and ``${name.field}`` substitution
"""

import re
from typing import Any, Dict

from supaprobe.utils.error_handling import UnresolvedReferenceError

REFERENCE = re.compile(r"\$\{([A-Za-z_][\w]*(?:\.[\w]+)*)\}")


class ProbeContext:
    """Named results of a single sequence run"""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def save(self, name: str, value: Any) -> None:
        self._values[name] = value

    def has(self, name: str) -> bool:
        return name in self._values

    def lookup(self, path: str) -> Any:
        head, *rest = path.split(".")
        if head not in self._values:
            raise UnresolvedReferenceError(path)

        value = self._values[head]
        for part in rest:
            if isinstance(value, dict) and part in value:
                value = value[part]
            elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                raise UnresolvedReferenceError(path)

        if value is None:
            raise UnresolvedReferenceError(path)
        return value

    def resolve(self, value: Any) -> Any:
        """Substitute references inside strings, dicts and lists"""
        if isinstance(value, str):
            whole = REFERENCE.fullmatch(value)
            if whole:
                # Keep the saved value's type for a bare reference
                return self.lookup(whole.group(1))
            return REFERENCE.sub(lambda m: str(self.lookup(m.group(1))), value)
        if isinstance(value, dict):
            return {key: self.resolve(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.resolve(item) for item in value]
        return value
