from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from software_updater.core import descriptors
from software_updater.core.errors import (
    NoProgramAvailable,
    PreferredProgramUnavailable,
    SpawnFailure,
    UnsupportedEcosystem,
    UpdaterError,
)
from software_updater.core.execution import execute
from software_updater.core.models import (
    AvailabilityMap,
    CombinedSelection,
    ExecutionResult,
    ExitStatus,
    FamilyUpdateReport,
    ProgramDescriptor,
    ReportStatus,
    SelectionResult,
)
from software_updater.core.probe import probe
from software_updater.core.selection import PreferencePolicy, select, select_combined

logger = logging.getLogger(__name__)

_ARCH = ("pacman", "aur")
_DEB = ("deb",)
_RPM = ("rpm",)

# Detected ecosystem id (os-release ID / ID_LIKE, or platform) -> OS families.
ECOSYSTEMS: Dict[str, Tuple[str, ...]] = {
    "arch": _ARCH,
    "archarm": _ARCH,
    "manjaro": _ARCH,
    "endeavouros": _ARCH,
    "garuda": _ARCH,
    "artix": _ARCH,
    "debian": _DEB,
    "ubuntu": _DEB,
    "linuxmint": _DEB,
    "pop": _DEB,
    "elementary": _DEB,
    "raspbian": _DEB,
    "kali": _DEB,
    "zorin": _DEB,
    "fedora": _RPM,
    "rhel": _RPM,
    "centos": _RPM,
    "rocky": _RPM,
    "almalinux": _RPM,
    "suse": _RPM,
    "opensuse": _RPM,
    "opensuse-leap": _RPM,
    "opensuse-tumbleweed": _RPM,
    "gentoo": ("portage",),
    "solus": ("eopkg",),
    "alpine": ("apk",),
    "nixos": ("nix_channel",),
    "windows": ("choco", "winget"),
    "macos": ("brew",),
}


class FamilyPlan(BaseModel):
    """What the configuration asks for one family."""

    model_config = ConfigDict(frozen=True)

    family: str
    enabled: bool = True
    preferred: Optional[str] = None
    # Composite families only: every program the configuration wants run.
    requested: Tuple[str, ...] = ()
    # Families that may legitimately be absent (snap, language toolchains).
    optional: bool = False
    # Set for an undetected OS ecosystem; ``family`` then holds its raw id.
    unsupported: bool = False


class UpdateOptions(BaseModel):
    policy: PreferencePolicy = PreferencePolicy.FALLBACK
    capture: bool = False
    timeout: Optional[float] = None
    dry_run: bool = False
    jobs: int = 1
    search_path: Optional[str] = None
    # Keeps stdout free for a machine-readable report.
    output_to_stderr: bool = False


def is_supported(ecosystem_id: str) -> bool:
    return ecosystem_id in ECOSYSTEMS


def ecosystem_families(ecosystem_id: str) -> Tuple[str, ...]:
    try:
        return ECOSYSTEMS[ecosystem_id]
    except KeyError:
        raise UnsupportedEcosystem(ecosystem_id) from None


def _report(plan: FamilyPlan, status: ReportStatus, **kwargs) -> FamilyUpdateReport:
    return FamilyUpdateReport(
        family=plan.family,
        display_name=descriptors.title(plan.family),
        status=status,
        **kwargs,
    )


def _preferred(
    plan: FamilyPlan,
    available: AvailabilityMap,
    purpose: str,
    policy: PreferencePolicy,
) -> Optional[ProgramDescriptor]:
    if not plan.preferred:
        return None
    descriptor = descriptors.find(plan.family, plan.preferred)
    if descriptor is None:
        if policy == PreferencePolicy.STRICT:
            raise PreferredProgramUnavailable(
                purpose, plan.preferred, [d.key for d in available], known=False
            )
        logger.warning(f"Unknown {purpose} '{plan.preferred}' in configuration, ignoring it")
    return descriptor


def _select(
    plan: FamilyPlan,
    available: AvailabilityMap,
    purpose: str,
    policy: PreferencePolicy,
) -> Union[SelectionResult, CombinedSelection]:
    if plan.family in descriptors.COMPOSITE_FAMILIES and plan.requested:
        requested = []
        for key in plan.requested:
            descriptor = descriptors.find(plan.family, key)
            if descriptor is None:
                logger.warning(f"Unknown {purpose} '{key}' in configuration, ignoring it")
                continue
            requested.append(descriptor)
        return select_combined(available, requested, purpose=purpose)
    return select(
        available,
        _preferred(plan, available, purpose, policy),
        purpose=purpose,
        policy=policy,
    )


def _failure_detail(results: Sequence[ExecutionResult]) -> Optional[str]:
    details = []
    for result in results:
        if result.succeeded:
            continue
        if result.status == ExitStatus.SIGNALED:
            details.append(f"{result.program} terminated by signal {result.signal}")
        elif result.status == ExitStatus.TIMEOUT:
            details.append(f"{result.program} timed out")
        else:
            details.append(f"{result.program} exited with status {result.returncode}")
    return "; ".join(details) or None


def update_family(plan: FamilyPlan, options: UpdateOptions) -> FamilyUpdateReport:
    """Probe, select and execute for one family, folding every failure into the report."""
    if plan.unsupported:
        exc = UnsupportedEcosystem(plan.family)
        logger.error(str(exc))
        return FamilyUpdateReport(
            family=plan.family,
            display_name=plan.family,
            status=ReportStatus.UNSUPPORTED,
            error=str(exc),
        )

    display = descriptors.title(plan.family)
    if not plan.enabled:
        logger.info(f"Skipping {display} packages (disabled in configuration)")
        return _report(plan, ReportStatus.SKIPPED)

    try:
        candidates = descriptors.table(plan.family)
        if not candidates:
            logger.info(f"Skipping {display} packages (no candidate programs)")
            return _report(plan, ReportStatus.SKIPPED)
        purpose = descriptors.purpose(plan.family)
        logger.info(f"Updating {display} Packages")
        available = probe(candidates, options.search_path)
        selection = _select(plan, available, purpose, options.policy)
    except PreferredProgramUnavailable as exc:
        logger.error(str(exc))
        return _report(plan, ReportStatus.PREFERRED_UNAVAILABLE, error=str(exc))
    except NoProgramAvailable as exc:
        if plan.optional:
            logger.info(f"Skipping {display} packages: {exc}")
            return _report(plan, ReportStatus.SKIPPED, error=str(exc))
        logger.error(str(exc))
        return _report(plan, ReportStatus.NO_PROGRAM, error=str(exc))
    except UnsupportedEcosystem as exc:
        logger.error(str(exc))
        return _report(plan, ReportStatus.UNSUPPORTED, error=str(exc))

    if isinstance(selection, CombinedSelection):
        parts = selection.selections
    else:
        parts = (selection,)
    programs = [part.descriptor.key for part in parts]
    logger.info(f"Selected {', '.join(programs)} for {display}")

    if options.dry_run:
        for part in parts:
            logger.info(f"Would run: {part.descriptor.command_line()}")
        return _report(plan, ReportStatus.PLANNED, programs=programs)

    results: List[ExecutionResult] = []
    for part in parts:
        try:
            results.append(
                execute(
                    part,
                    capture=options.capture,
                    timeout=options.timeout,
                    search_path=options.search_path,
                    to_stderr=options.output_to_stderr,
                )
            )
        except SpawnFailure as exc:
            logger.error(str(exc))
            return _report(
                plan, ReportStatus.SPAWN_FAILED,
                programs=programs, results=results, error=str(exc),
            )

    detail = _failure_detail(results)
    if detail:
        return _report(
            plan, ReportStatus.FAILED, programs=programs, results=results, error=detail
        )
    logger.info(f"{display} packages updated!")
    return _report(plan, ReportStatus.SUCCESS, programs=programs, results=results)


def _guarded(plan: FamilyPlan, options: UpdateOptions) -> FamilyUpdateReport:
    try:
        return update_family(plan, options)
    except UpdaterError as exc:
        logger.error(f"{plan.family}: {exc}")
        return _report(plan, ReportStatus.FAILED, error=str(exc))
    except Exception as exc:
        logger.exception(f"Unexpected error while updating {plan.family}")
        return _report(plan, ReportStatus.FAILED, error=f"unexpected error: {exc}")


def run(plans: Sequence[FamilyPlan], options: UpdateOptions | None = None) -> List[FamilyUpdateReport]:
    """Update every planned family; one family's failure never stops the others.

    With ``options.jobs > 1`` families run concurrently, but reports are
    still returned in plan order.
    """
    options = options or UpdateOptions()
    if options.jobs > 1 and len(plans) > 1:
        with ThreadPoolExecutor(max_workers=options.jobs) as pool:
            futures = [pool.submit(_guarded, plan, options) for plan in plans]
            return [future.result() for future in futures]
    return [_guarded(plan, options) for plan in plans]
