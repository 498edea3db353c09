import pytest

from software_updater.core import descriptors, router
from software_updater.core.config import Config, build_plans
from software_updater.core.errors import SpawnFailure, UnsupportedEcosystem
from software_updater.core.models import ProgramDescriptor, ReportStatus
from software_updater.core.router import FamilyPlan, UpdateOptions, ecosystem_families, run, update_family
from software_updater.core.selection import PreferencePolicy


def _descriptor(family, key, elevated=False):
    return ProgramDescriptor(
        family=family, key=key, display_name=key.title(),
        executable_name=key, update_args=("update",), requires_elevation=elevated,
    )


@pytest.fixture
def tables(monkeypatch):
    """Three small families whose programs live in the fake bin directory."""
    monkeypatch.setitem(descriptors.TABLES, "alpha", (_descriptor("alpha", "alpha-up"),))
    monkeypatch.setitem(descriptors.TABLES, "beta", (_descriptor("beta", "beta-up"),))
    monkeypatch.setitem(
        descriptors.TABLES, "gamma",
        (_descriptor("gamma", "gamma-one"), _descriptor("gamma", "gamma-two")),
    )


@pytest.fixture
def options(fake_bin):
    return UpdateOptions(search_path=str(fake_bin))


def test_ecosystem_families():
    assert ecosystem_families("arch") == ("pacman", "aur")
    assert ecosystem_families("ubuntu") == ("deb",)
    assert ecosystem_families("windows") == ("choco", "winget")
    with pytest.raises(UnsupportedEcosystem):
        ecosystem_families("haiku")


def test_partial_failure_isolation(tables, make_program, options):
    make_program("alpha-up")
    make_program("gamma-two")
    plans = [FamilyPlan(family="alpha"), FamilyPlan(family="beta"), FamilyPlan(family="gamma")]

    reports = run(plans, options)

    assert [r.family for r in reports] == ["alpha", "beta", "gamma"]
    assert reports[0].status == ReportStatus.SUCCESS
    assert reports[1].status == ReportStatus.NO_PROGRAM
    assert reports[1].error == "no available beta updater"
    assert reports[2].status == ReportStatus.SUCCESS
    assert reports[2].programs == ["gamma-two"]


def test_non_zero_exit_is_reported_as_failed(tables, make_program, options):
    make_program("alpha-up", "exit 4")
    report = update_family(FamilyPlan(family="alpha"), options)

    assert report.status == ReportStatus.FAILED
    assert report.results[0].returncode == 4
    assert report.error == "alpha-up exited with status 4"
    assert not report.ok


def test_disabled_family_is_skipped_without_probing(monkeypatch, tables, options):
    def boom(*args, **kwargs):
        raise AssertionError("probe must not run for a disabled family")

    monkeypatch.setattr(router, "probe", boom)
    report = update_family(FamilyPlan(family="alpha", enabled=False), options)

    assert report.status == ReportStatus.SKIPPED
    assert report.programs == []
    assert report.ok


def test_optional_family_without_program_is_skipped(tables, options):
    report = update_family(FamilyPlan(family="beta", optional=True), options)
    assert report.status == ReportStatus.SKIPPED
    assert report.error == "no available beta updater"


def test_unknown_family_is_unsupported(options):
    report = update_family(FamilyPlan(family="haiku"), options)
    assert report.status == ReportStatus.UNSUPPORTED
    assert "haiku" in report.error


def test_preferred_program_is_used(tables, make_program, options):
    make_program("gamma-one")
    make_program("gamma-two")
    report = update_family(FamilyPlan(family="gamma", preferred="gamma-two"), options)
    assert report.programs == ["gamma-two"]


def test_strict_policy_reports_missing_preference(tables, make_program, fake_bin):
    make_program("gamma-one")
    options = UpdateOptions(search_path=str(fake_bin), policy=PreferencePolicy.STRICT)
    report = update_family(FamilyPlan(family="gamma", preferred="gamma-two"), options)

    assert report.status == ReportStatus.PREFERRED_UNAVAILABLE
    assert "gamma-two" in report.error


def test_unknown_preference_falls_back(tables, make_program, options):
    make_program("gamma-two")
    report = update_family(FamilyPlan(family="gamma", preferred="nope"), options)
    assert report.status == ReportStatus.SUCCESS
    assert report.programs == ["gamma-two"]


def test_dry_run_selects_without_executing(monkeypatch, tables, make_program, fake_bin):
    make_program("alpha-up")

    def boom(*args, **kwargs):
        raise AssertionError("dry run must not execute")

    monkeypatch.setattr(router, "execute", boom)
    options = UpdateOptions(search_path=str(fake_bin), dry_run=True)
    report = update_family(FamilyPlan(family="alpha"), options)

    assert report.status == ReportStatus.PLANNED
    assert report.programs == ["alpha-up"]


def test_composite_family_runs_every_requested_program(make_program, fake_bin):
    log = fake_bin / "calls.log"
    make_program("rustup", f'echo rustup >> "{log}"')
    make_program("cargo", f'echo cargo >> "{log}"')
    plan = FamilyPlan(family="rust", requested=("rustup", "cargo"))

    report = update_family(plan, UpdateOptions(search_path=str(fake_bin)))

    assert report.status == ReportStatus.SUCCESS
    assert report.programs == ["rustup", "cargo"]
    assert [r.command[1:] for r in report.results] == [["update"], ["install-update", "-a"]]
    assert log.read_text().split() == ["rustup", "cargo"]


def test_composite_failure_still_runs_later_parts(make_program, fake_bin):
    make_program("npm", "exit 1")
    make_program("yarn")
    plan = FamilyPlan(family="js", requested=("npm", "yarn"))

    report = update_family(plan, UpdateOptions(search_path=str(fake_bin)))

    assert report.status == ReportStatus.FAILED
    assert [r.succeeded for r in report.results] == [False, True]
    assert report.error == "npm exited with status 1"


def test_spawn_failure_is_reported(not_root, make_program, fake_bin):
    make_program("pacman")
    report = update_family(FamilyPlan(family="pacman"), UpdateOptions(search_path=str(fake_bin)))

    assert report.status == ReportStatus.SPAWN_FAILED
    assert "elevation launcher" in report.error


def test_unexpected_error_does_not_abort_run(monkeypatch, tables, make_program, options):
    make_program("alpha-up")
    make_program("beta-up")
    real_execute = router.execute

    def flaky(selection, **kwargs):
        if selection.descriptor.family == "alpha":
            raise RuntimeError("kaboom")
        return real_execute(selection, **kwargs)

    monkeypatch.setattr(router, "execute", flaky)
    reports = run([FamilyPlan(family="alpha"), FamilyPlan(family="beta")], options)

    assert reports[0].status == ReportStatus.FAILED
    assert "kaboom" in reports[0].error
    assert reports[1].status == ReportStatus.SUCCESS


def test_parallel_run_keeps_plan_order(tables, make_program, fake_bin):
    make_program("alpha-up", "sleep 0.3")
    make_program("beta-up")
    make_program("gamma-one")
    plans = [FamilyPlan(family="alpha"), FamilyPlan(family="beta"), FamilyPlan(family="gamma")]

    reports = run(plans, UpdateOptions(search_path=str(fake_bin), jobs=3))

    assert [r.family for r in reports] == ["alpha", "beta", "gamma"]
    assert all(r.status == ReportStatus.SUCCESS for r in reports)


def test_empty_table_is_skipped_without_probing(monkeypatch, options):
    monkeypatch.setitem(descriptors.TABLES, "empty", ())

    def boom(*args, **kwargs):
        raise AssertionError("probe must not run for a family without candidates")

    monkeypatch.setattr(router, "probe", boom)
    report = update_family(FamilyPlan(family="empty"), options)

    assert report.status == ReportStatus.SKIPPED
    assert report.ok


def test_unsupported_ecosystem_named_like_a_family_is_not_run(make_program, fake_bin):
    log = fake_bin / "calls.log"
    make_program("rustup", f'echo rustup >> "{log}"')
    plans = build_plans(Config(), "rust", only=["rust"])

    reports = run(plans, UpdateOptions(search_path=str(fake_bin)))

    assert [r.status for r in reports] == [ReportStatus.UNSUPPORTED, ReportStatus.SUCCESS]
    assert reports[0].error == "unsupported ecosystem: rust"
    assert log.read_text().split() == ["rustup"]


def test_strict_policy_names_unknown_preference(tables, make_program, fake_bin):
    make_program("gamma-one")
    options = UpdateOptions(search_path=str(fake_bin), policy=PreferencePolicy.STRICT)
    report = update_family(FamilyPlan(family="gamma", preferred="nope"), options)

    assert report.status == ReportStatus.PREFERRED_UNAVAILABLE
    assert "'nope' is not a known program" in report.error
    assert report.error.endswith("Available: gamma-one")


def test_output_to_stderr_is_forwarded(monkeypatch, tables, make_program, fake_bin):
    make_program("alpha-up")
    seen = []

    def fake_execute(selection, **kwargs):
        seen.append(kwargs["to_stderr"])
        raise SpawnFailure("not started")

    monkeypatch.setattr(router, "execute", fake_execute)
    update_family(
        FamilyPlan(family="alpha"),
        UpdateOptions(search_path=str(fake_bin), output_to_stderr=True),
    )

    assert seen == [True]
