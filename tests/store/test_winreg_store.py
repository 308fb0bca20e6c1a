from __future__ import annotations

import copy

import pytest

from regsnap.engine.apply import apply_flat
from regsnap.engine.confirm import ScriptedConfirmer
from regsnap.engine.flatten import flatten
from regsnap.engine.restore import replay
from regsnap.engine.types import FlatObject, IntValue, MultiStringValue, StringValue
from regsnap.errors import (
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    StoreWriteError,
    UnsupportedValueError,
)
from regsnap.store import winreg_store
from regsnap.store.winreg_store import WinRegistry


class FakeWinreg:
    """Just enough of the `winreg` module for WinRegistry, backed by dicts."""

    HKEY_CURRENT_USER = "HKEY_CURRENT_USER"
    HKEY_LOCAL_MACHINE = "HKEY_LOCAL_MACHINE"
    HKEY_CLASSES_ROOT = "HKEY_CLASSES_ROOT"
    HKEY_USERS = "HKEY_USERS"
    HKEY_CURRENT_CONFIG = "HKEY_CURRENT_CONFIG"
    KEY_READ = 0x20019
    KEY_QUERY_VALUE = 0x0001
    KEY_SET_VALUE = 0x0002
    REG_SZ = 1
    REG_EXPAND_SZ = 2
    REG_BINARY = 3
    REG_DWORD = 4
    REG_MULTI_SZ = 7
    REG_QWORD = 11

    def __init__(self):
        # (hive, lower path) -> {"values": {name: (value, type)}, "subkeys": [name]}
        self.keys = {}
        self.denied = set()
        self.broken = set()
        self.unreadable = set()
        self.open_handles = 0
        for hive in ("HKEY_CURRENT_USER", "HKEY_LOCAL_MACHINE"):
            self.keys[(hive, "")] = {"values": {}, "subkeys": []}

    def _entry(self, hive, path):
        e = self.keys.get((hive, path.lower()))
        if e is None:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        return e

    # ---- module functions ----

    def OpenKey(self, hive, subpath, reserved, access):
        self._entry(hive, subpath)
        if subpath.lower() in self.unreadable:
            raise PermissionError(5, "Access is denied")
        if access & self.KEY_SET_VALUE and subpath.lower() in self.denied:
            raise PermissionError(5, "Access is denied")
        self.open_handles += 1
        return (hive, subpath.lower())

    def CloseKey(self, handle):
        self.open_handles -= 1

    def CreateKeyEx(self, hive, subpath, reserved, access):
        path = ""
        for part in [p for p in subpath.split("\\") if p]:
            parent = self._entry(hive, path)
            path = f"{path}\\{part}" if path else part
            if (hive, path.lower()) not in self.keys:
                if any(path.lower().startswith(d) for d in self.denied):
                    raise PermissionError(5, "Access is denied")
                self.keys[(hive, path.lower())] = {"values": {}, "subkeys": []}
                parent["subkeys"].append(part)
        self.open_handles += 1
        return (hive, subpath.lower())

    def QueryInfoKey(self, handle):
        e = self.keys[handle]
        return len(e["subkeys"]), len(e["values"]), 0

    def EnumValue(self, handle, index):
        name, (value, reg_type) = list(self.keys[handle]["values"].items())[index]
        return name, value, reg_type

    def EnumKey(self, handle, index):
        return self.keys[handle]["subkeys"][index]

    def QueryValueEx(self, handle, name):
        values = self.keys[handle]["values"]
        if name not in values:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        return values[name]

    def SetValueEx(self, handle, name, reserved, reg_type, value):
        if handle[1] in self.broken:
            raise OSError(1450, "Insufficient system resources")
        self.keys[handle]["values"][name] = (value, reg_type)

    def DeleteValue(self, handle, name):
        values = self.keys[handle]["values"]
        if name not in values:
            raise FileNotFoundError(2, "The system cannot find the file specified")
        del values[name]

    # ---- fixture helper ----

    def put(self, path, name, value, reg_type):
        self.CreateKeyEx(self.HKEY_CURRENT_USER, path, 0, self.KEY_READ)
        self.open_handles -= 1
        self.keys[(self.HKEY_CURRENT_USER, path.lower())]["values"][name] = (value, reg_type)


@pytest.fixture
def fake(monkeypatch):
    fw = FakeWinreg()
    fw.put(r"Software\Contoso", "", "default value", fw.REG_SZ)
    fw.put(r"Software\Contoso", "Description", "Before", fw.REG_SZ)
    fw.put(r"Software\Contoso", "Home", "%USERPROFILE%", fw.REG_EXPAND_SZ)
    fw.put(r"Software\Contoso", "Retries", 3, fw.REG_DWORD)
    fw.put(r"Software\Contoso", "Blob", b"\x00\x01", fw.REG_BINARY)
    fw.put(r"Software\Contoso\General", "Paths", ["a", "b"], fw.REG_MULTI_SZ)
    monkeypatch.setattr(winreg_store, "winreg", fw)
    return fw


ROOT = r"HKCU:\Software\Contoso"


def test_unavailable_without_winreg(monkeypatch):
    monkeypatch.setattr(winreg_store, "winreg", None)
    with pytest.raises(StoreUnavailableError):
        WinRegistry()


def test_read_values_maps_supported_types_only(fake):
    reg = WinRegistry()
    values = reg.read_values(reg.resolve_node(ROOT))
    assert values == {
        "Description": StringValue("Before"),
        "Home": StringValue("%USERPROFILE%"),
        "Retries": IntValue(3),
    }
    assert fake.open_handles == 0


def test_flatten_over_live_provider(fake):
    flat = flatten(WinRegistry(), "HKEY_CURRENT_USER\\Software\\Contoso", max_depth=1)
    assert flat.path == ROOT
    assert flat["General\\Paths"] == MultiStringValue(("a", "b"))


def test_resolve_missing_key(fake):
    with pytest.raises(NotFoundError):
        WinRegistry().resolve_node(r"HKCU:\Software\Nope")


def test_read_value_missing_is_none(fake):
    reg = WinRegistry()
    assert reg.read_value(ROOT, "Nope") is None
    assert reg.read_value(ROOT + r"\Nope", "x") is None
    assert reg.read_value(ROOT, "Retries") == IntValue(3)


@pytest.mark.parametrize(
    "payload,stored",
    [
        (StringValue("x"), ("x", FakeWinreg.REG_SZ)),
        (IntValue(7), (7, FakeWinreg.REG_DWORD)),
        (IntValue(0x1_0000_0000), (0x1_0000_0000, FakeWinreg.REG_QWORD)),
        (IntValue(-1), (0xFFFF_FFFF_FFFF_FFFF, FakeWinreg.REG_QWORD)),
        (MultiStringValue(("p", "q")), (["p", "q"], FakeWinreg.REG_MULTI_SZ)),
    ],
)
def test_write_value_picks_registry_type(fake, payload, stored):
    reg = WinRegistry()
    node = reg.ensure_node(ROOT + r"\New\Sub")
    reg.write_value(node, "V", payload)
    assert fake.keys[("HKEY_CURRENT_USER", r"software\contoso\new\sub")]["values"]["V"] == stored
    assert fake.open_handles == 0


def test_write_errors_are_classified(fake):
    reg = WinRegistry()
    fake.denied.add(r"software\contoso")
    with pytest.raises(PermissionDeniedError):
        reg.write_value(reg.resolve_node(ROOT), "Description", StringValue("x"))
    fake.denied.clear()
    fake.broken.add(r"software\contoso")
    with pytest.raises(StoreWriteError) as ei:
        reg.write_value(reg.resolve_node(ROOT), "Description", StringValue("x"))
    assert not isinstance(ei.value, PermissionDeniedError)
    assert fake.open_handles == 0


def test_ensure_node_denied(fake):
    fake.denied.add(r"software\locked")
    with pytest.raises(PermissionDeniedError):
        WinRegistry().ensure_node(r"HKCU:\Software\Locked\Inner")


def test_remove_value(fake):
    reg = WinRegistry()
    reg.remove_value(ROOT, "Description")
    assert reg.read_value(ROOT, "Description") is None
    with pytest.raises(NotFoundError):
        reg.remove_value(ROOT, "Description")


# ------------- type preservation and round trips -------------


def _raw(fake, path=r"software\contoso"):
    return copy.deepcopy(fake.keys[(fake.HKEY_CURRENT_USER, path)]["values"])


def _flat(entries):
    return FlatObject(
        path=ROOT, drive="HKCU", parent_path=r"HKCU:\Software", child_name="Contoso", entries=entries
    )


@pytest.mark.parametrize(
    "existing,payload,stored",
    [
        ((5, FakeWinreg.REG_QWORD), IntValue(6), (6, FakeWinreg.REG_QWORD)),
        ((5, FakeWinreg.REG_DWORD), IntValue(0x1_0000_0000), (0x1_0000_0000, FakeWinreg.REG_QWORD)),
        (("%A%", FakeWinreg.REG_EXPAND_SZ), StringValue("%B%"), ("%B%", FakeWinreg.REG_EXPAND_SZ)),
        (("x", FakeWinreg.REG_SZ), IntValue(1), (1, FakeWinreg.REG_DWORD)),
        ((1, FakeWinreg.REG_DWORD), StringValue("1"), ("1", FakeWinreg.REG_SZ)),
    ],
)
def test_write_keeps_type_of_existing_value_of_same_kind(fake, existing, payload, stored):
    fake.put(r"Software\Contoso", "V", *existing)
    reg = WinRegistry()
    reg.write_value(reg.resolve_node(ROOT), "V", payload)
    assert _raw(fake)["V"] == stored
    assert fake.open_handles == 0


def test_apply_then_replay_restores_raw_values_and_types(fake):
    fake.put(r"Software\Contoso", "Big", 5, fake.REG_QWORD)
    fake.put(r"Software\Contoso", "Neg", 0xFFFF_FFFF_FFFF_FFFE, fake.REG_QWORD)
    before = _raw(fake)
    reg = WinRegistry()
    flat = _flat({"Big": 6, "Neg": 1, "Home": "%TEMP%", "Retries": 7, "Description": "After", "Fresh": "new"})

    res = apply_flat(reg, flat, force=True)

    assert res.applied == 6
    during = _raw(fake)
    assert during["Big"] == (6, fake.REG_QWORD)
    assert during["Neg"] == (1, fake.REG_QWORD)
    assert during["Home"] == ("%TEMP%", fake.REG_EXPAND_SZ)
    assert during["Retries"] == (7, fake.REG_DWORD)
    assert during["Fresh"] == ("new", fake.REG_SZ)

    replay(reg, res.restore_commands)
    assert _raw(fake) == before
    assert fake.open_handles == 0


def test_unsupported_live_value_is_reported_not_overwritten(fake):
    reg = WinRegistry()
    with pytest.raises(UnsupportedValueError):
        reg.read_value(ROOT, "Blob")
    before = _raw(fake)

    res = apply_flat(reg, _flat({"Blob": "x", "Description": "After"}), force=True)

    assert [(r.key, r.kind) for r in res.records] == [("Blob", "failed"), ("Description", "updated")]
    assert "UnsupportedValueError" in res.records[0].error
    assert not any("'Blob'" in c for c in res.restore_commands)
    assert _raw(fake)["Blob"] == before["Blob"]
    replay(reg, res.restore_commands)
    assert _raw(fake) == before


def test_unreadable_key_maps_to_permission_denied(fake):
    fake.put(r"Software\Contoso\Locked", "X", "1", fake.REG_SZ)
    fake.unreadable.add(r"software\contoso\locked")
    reg = WinRegistry()
    with pytest.raises(PermissionDeniedError):
        reg.resolve_node(ROOT + r"\Locked")
    with pytest.raises(PermissionDeniedError):
        reg.read_value(ROOT + r"\Locked", "X")
    with pytest.raises(PermissionDeniedError):
        flatten(reg, ROOT, max_depth=2)

    res = apply_flat(
        reg,
        _flat({"Locked\\X": "2", "Description": "After"}),
        force=True,
        confirmer=ScriptedConfirmer(["n"]),
    )
    assert res.aborted is True
    assert [r.kind for r in res.records] == ["failed"]
    assert _raw(fake)["Description"] == ("Before", fake.REG_SZ)
    assert fake.open_handles == 0
