from __future__ import annotations


class UpdaterError(RuntimeError):
    pass


class NoProgramAvailable(UpdaterError):
    """No candidate program of a family resolved on the search path."""

    def __init__(self, purpose: str, message: str | None = None):
        self.purpose = purpose
        super().__init__(message or f"no available {purpose}")


class PreferredProgramUnavailable(NoProgramAvailable):
    """Raised under the strict preference policy when the configured program is missing."""

    def __init__(self, purpose: str, preferred: str, available: list[str], known: bool = True):
        self.preferred = preferred
        self.available = available
        reason = "is not installed" if known else "is not a known program"
        super().__init__(
            purpose,
            f"preferred {purpose} '{preferred}' {reason}. "
            f"Available: {', '.join(available) if available else '(none)'}",
        )


class SpawnFailure(UpdaterError):
    """The chosen program could not be started at all."""


class UnsupportedEcosystem(UpdaterError):
    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"unsupported ecosystem: {identifier}")


class ConfigError(UpdaterError):
    pass
