"""Exceptions raised before the dashboard starts."""


class ProcTrendError(Exception):
    """Base class for errors that abort proctrend with a message."""


class ConfigError(ProcTrendError):
    """Invalid option or configuration file value."""


class ResolveError(ProcTrendError):
    """The PID or name filters did not select exactly one process."""


class ProcessNotFoundError(ResolveError):
    """No live process matched the token."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"process {token} not found")


class AmbiguousProcessError(ResolveError):
    """More than one process matched the name filters."""

    def __init__(self, count: int, candidates: list[str] | None = None) -> None:
        self.count = count
        self.candidates = candidates or []
        message = f"found {count} matching processes"
        if self.candidates:
            shown = ", ".join(self.candidates[:10])
            more = f", ... (+{count - 10} more)" if count > 10 else ""
            message = f"{message}: {shown}{more}"
        super().__init__(message)
