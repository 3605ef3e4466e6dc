"""Resolve a PID or name fragments to a single process."""

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

import psutil

from proctrend.errors import AmbiguousProcessError, ProcessNotFoundError
from proctrend.models import ProcessHandle

logger = logging.getLogger(__name__)


class ProcessLike(Protocol):
    """The slice of psutil.Process the resolver needs."""

    pid: int

    def name(self) -> str: ...


def _parse_pid(token: str) -> int | None:
    """Return the token as a PID if it is an integer, else None."""
    try:
        return int(token)
    except ValueError:
        return None


def _safe_name(proc: ProcessLike) -> str | None:
    try:
        return proc.name() or ""
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


def resolve(
    token: str,
    extra_filters: Sequence[str] = (),
    processes: Iterable[ProcessLike] | None = None,
) -> ProcessHandle:
    """
    Map a user-supplied token to exactly one live process.

    A token that parses as an integer is matched against PIDs only, never
    against names. Any other token, together with ``extra_filters``, is a
    set of case-insensitive substrings that must all occur in the process
    name.

    Args:
        token: PID or first name fragment.
        extra_filters: Further name fragments (ignored for PID lookups).
        processes: Process table to search. Defaults to psutil.process_iter().

    Returns:
        Handle of the matching process.

    Raises:
        ProcessNotFoundError: Nothing matched.
        AmbiguousProcessError: More than one process matched the name filters.
    """
    token = token.strip()
    if processes is None:
        processes = psutil.process_iter()

    pid = _parse_pid(token)
    if pid is not None:
        for proc in processes:
            if proc.pid == pid:
                name = _safe_name(proc)
                logger.debug("Resolved PID %d to %r", pid, name)
                return ProcessHandle(pid=pid, name=name or str(pid))
        raise ProcessNotFoundError(token)

    filters = [part.strip().lower() for part in (token, *extra_filters) if part.strip()]
    matches: list[ProcessHandle] = []
    for proc in processes:
        name = _safe_name(proc)
        if name is None:
            continue
        lower_name = name.strip().lower()
        if all(part in lower_name for part in filters):
            matches.append(ProcessHandle(pid=proc.pid, name=name))

    if not matches:
        raise ProcessNotFoundError(token)
    if len(matches) > 1:
        raise AmbiguousProcessError(len(matches), [m.label for m in matches])

    logger.debug("Resolved filters %r to %s", filters, matches[0].label)
    return matches[0]
