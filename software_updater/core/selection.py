from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence, Union

from software_updater.core.errors import NoProgramAvailable, PreferredProgramUnavailable
from software_updater.core.models import (
    AvailabilityMap,
    CombinedSelection,
    ProgramDescriptor,
    SelectionResult,
)

logger = logging.getLogger(__name__)


class PreferencePolicy(str, Enum):
    """What to do when the configured program is not installed."""

    FALLBACK = "fallback"
    STRICT = "strict"


def select(
    available: AvailabilityMap,
    preferred: Optional[ProgramDescriptor] = None,
    *,
    purpose: str,
    policy: PreferencePolicy = PreferencePolicy.FALLBACK,
) -> SelectionResult:
    """Pick exactly one program.

    The preferred descriptor wins when it is installed; this is an identity
    match, so two descriptors sharing an executable stay distinct. Otherwise
    the first available entry in declared order is chosen, unless the strict
    policy forbids falling back.
    """
    if preferred is not None:
        path = available.get(preferred)
        if path is not None:
            return SelectionResult(descriptor=preferred, path=path)
        if policy == PreferencePolicy.STRICT:
            raise PreferredProgramUnavailable(
                purpose, preferred.key, [d.key for d in available]
            )
        logger.info(f"Preferred {purpose} '{preferred.key}' not installed, falling back")

    for descriptor, path in available.items():
        return SelectionResult(descriptor=descriptor, path=path)

    raise NoProgramAvailable(purpose)


def select_combined(
    available: AvailabilityMap,
    requested: Sequence[ProgramDescriptor],
    *,
    purpose: str,
) -> Union[SelectionResult, CombinedSelection]:
    """Select every requested program that is installed.

    Two or more hits produce a :class:`CombinedSelection` run in declared
    order; a single hit degrades to a plain selection.
    """
    wanted = set(requested)
    chosen = [
        SelectionResult(descriptor=descriptor, path=path)
        for descriptor, path in available.items()
        if descriptor in wanted
    ]
    if not chosen:
        raise NoProgramAvailable(purpose)
    if len(chosen) == 1:
        return chosen[0]
    return CombinedSelection(selections=tuple(chosen))
