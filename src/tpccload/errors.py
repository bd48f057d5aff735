from __future__ import annotations

# -----------------------------
# Process exit codes
# -----------------------------
EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FAILURE = 3
EXIT_INTERRUPTED = 4


class LoadError(Exception):
    """Base for every fatal condition; carries the process exit code."""

    exit_code = EXIT_FAILURE


class ConfigError(LoadError):
    exit_code = EXIT_CONFIG


class DriverError(LoadError):
    pass


class OutputError(LoadError):
    pass


class WorkerError(LoadError):
    def __init__(self, ordinal: int, job: int | None, message: str):
        where = f"worker {ordinal}" if job is None else f"worker {ordinal} (job {job})"
        super().__init__(f"{where}: {message}")
        self.ordinal = ordinal
        self.job = job


class JoinInterrupted(LoadError):
    exit_code = EXIT_INTERRUPTED
