from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, Optional

from software_updater.core.models import AvailabilityMap, ProgramDescriptor

logger = logging.getLogger(__name__)


def resolve(executable_name: str, search_path: Optional[str] = None) -> Optional[Path]:
    """Locate an executable the way a shell would; ``None`` if it is not installed."""
    found = shutil.which(executable_name, path=search_path)
    return Path(found) if found else None


def probe(
    descriptors: Iterable[ProgramDescriptor],
    search_path: Optional[str] = None,
) -> AvailabilityMap:
    """Map every installed descriptor to its resolved path, in declared order.

    No caching: installed programs can change between runs of the tool.
    """
    available: AvailabilityMap = {}
    for descriptor in descriptors:
        try:
            path = resolve(descriptor.executable_name, search_path)
        except OSError as exc:
            logger.debug(f"Could not resolve {descriptor.executable_name}: {exc}")
            continue
        if path is None:
            logger.debug(f"{descriptor.display_name} ({descriptor.executable_name}) not found")
            continue
        logger.debug(f"{descriptor.display_name} found at {path}")
        available[descriptor] = path
    return available
