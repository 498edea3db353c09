from __future__ import annotations

import shlex
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_serializer


class ProgramDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    family: str
    key: str
    display_name: str
    executable_name: str
    update_args: Tuple[str, ...] = ()
    requires_elevation: bool = False

    @property
    def identity(self) -> tuple[str, str]:
        return (self.family, self.key)

    def command_line(self) -> str:
        return shlex.join([self.executable_name, *self.update_args])


# Insertion order follows the descriptor table; only resolved programs are present.
AvailabilityMap = Dict[ProgramDescriptor, Path]


class SelectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    descriptor: ProgramDescriptor
    path: Path


class CombinedSelection(BaseModel):
    """Several programs of one family, run one after another."""

    model_config = ConfigDict(frozen=True)

    selections: Tuple[SelectionResult, ...]

    @property
    def descriptors(self) -> list[ProgramDescriptor]:
        return [s.descriptor for s in self.selections]


class ExitStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SIGNALED = "signaled"
    TIMEOUT = "timeout"


class ExecutionResult(BaseModel):
    program: str
    command: List[str]
    returncode: Optional[int] = None
    status: ExitStatus
    signal: Optional[int] = None
    elevated: bool = False
    output: Optional[bytes] = None
    started_at: str
    finished_at: str

    @field_serializer("output", when_used="json")
    def _serialize_output(self, output: Optional[bytes]) -> Optional[str]:
        if output is None:
            return None
        return output.decode("utf-8", errors="replace")

    @property
    def succeeded(self) -> bool:
        return self.status == ExitStatus.SUCCESS


class ReportStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    NO_PROGRAM = "no_program"
    PREFERRED_UNAVAILABLE = "preferred_unavailable"
    SPAWN_FAILED = "spawn_failed"
    UNSUPPORTED = "unsupported"
    SKIPPED = "skipped"
    PLANNED = "planned"


OK_STATUSES = {ReportStatus.SUCCESS, ReportStatus.SKIPPED, ReportStatus.PLANNED}


class FamilyUpdateReport(BaseModel):
    family: str
    display_name: str
    status: ReportStatus
    programs: List[str] = []
    results: List[ExecutionResult] = []
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in OK_STATUSES
