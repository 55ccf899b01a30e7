from typing import Any

import msgspec
from msgspec.structs import asdict

from .log_level import LogLevel


class Entry(msgspec.Struct, kw_only=True):
    """Base log record. Subclasses add the fields their templates refer to."""

    level: LogLevel
    message: str | None = None
    tags: set[str] = msgspec.field(default_factory=set)

    def to_template(
        self,
        template: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        fields = asdict(self)
        fields["level"] = self.level.value
        fields.update(context or {})

        return template.format(**fields)
