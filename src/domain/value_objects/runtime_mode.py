"""Runtime mode shared by the error classifier and the audit sink."""

from enum import Enum


class RuntimeMode(str, Enum):
    """Whether the process exposes diagnostics to callers.

    Development mode leaks raw error messages and stack traces into API
    responses and pretty-prints audit events. Production mode does neither.
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def from_environment(cls, app_env: str) -> "RuntimeMode":
        """Map an ``APP_ENV`` value onto a mode.

        Only ``development`` is treated as development; ``test``, ``staging``
        and ``production`` all behave like production.
        """
        if (app_env or "").strip().lower() == "development":
            return cls.DEVELOPMENT
        return cls.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self is RuntimeMode.DEVELOPMENT
