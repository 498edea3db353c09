from software_updater.core import probe as probe_mod
from software_updater.core.models import ProgramDescriptor
from software_updater.core.probe import probe, resolve


def _descriptor(key, executable=None, args=("-Syu",), elevated=False):
    return ProgramDescriptor(
        family="test",
        key=key,
        display_name=key.title(),
        executable_name=executable or key,
        update_args=args,
        requires_elevation=elevated,
    )


def test_resolve_finds_executable_on_search_path(make_program, fake_bin):
    path = make_program("paru")
    assert resolve("paru", str(fake_bin)) == path
    assert resolve("yay", str(fake_bin)) is None


def test_probe_keeps_declared_order_and_drops_missing(make_program, fake_bin):
    make_program("pacman")
    make_program("yay")
    table = [_descriptor("paru"), _descriptor("pacman"), _descriptor("yay")]

    available = probe(table, str(fake_bin))

    assert [d.key for d in available] == ["pacman", "yay"]
    assert available[table[1]] == fake_bin / "pacman"


def test_probe_is_idempotent(make_program, fake_bin):
    make_program("apt")
    table = [_descriptor("apt"), _descriptor("aptitude")]

    first = probe(table, str(fake_bin))
    second = probe(table, str(fake_bin))

    assert first == second
    assert list(first) == list(second)


def test_probe_does_not_cache(make_program, fake_bin):
    table = [_descriptor("dnf")]
    assert probe(table, str(fake_bin)) == {}

    make_program("dnf")
    assert list(probe(table, str(fake_bin))) == table


def test_probe_keeps_descriptors_sharing_an_executable(make_program, fake_bin):
    make_program("pamac")
    upgrade = _descriptor("pamac", args=("upgrade",))
    aur = _descriptor("pamac-aur", executable="pamac", args=("upgrade", "--aur"))

    available = probe([upgrade, aur], str(fake_bin))

    assert list(available) == [upgrade, aur]


def test_probe_continues_after_resolution_error(monkeypatch, fake_bin):
    def fake_resolve(name, search_path=None):
        if name == "broken":
            raise PermissionError("denied")
        return fake_bin / name

    monkeypatch.setattr(probe_mod, "resolve", fake_resolve)
    table = [_descriptor("broken"), _descriptor("zypper")]

    available = probe(table)

    assert [d.key for d in available] == ["zypper"]


def test_probe_empty_table():
    assert probe([]) == {}
