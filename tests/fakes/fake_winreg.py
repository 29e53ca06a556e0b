# SPDX-License-Identifier: LGPL-3.0-or-later
"""
In-process stand-in for the stdlib `winreg` module.

Keys are stored case-insensitively per root. `deny_write` holds lower-cased
paths for which opening with write access raises PermissionError.
"""


class FakeHKey:
    def __init__(self, root, path, access):
        self.root = root
        self.path = path
        self.access = access
        self.closed = False


class FakeWinReg:
    HKEY_CURRENT_USER = 0x80000001
    HKEY_LOCAL_MACHINE = 0x80000002

    KEY_READ = 0x20019
    KEY_WRITE = 0x20006
    KEY_SET_VALUE = 0x0002
    KEY_WOW64_64KEY = 0x0100
    KEY_WOW64_32KEY = 0x0200

    REG_SZ = 1
    REG_EXPAND_SZ = 2
    REG_BINARY = 3
    REG_DWORD = 4
    REG_MULTI_SZ = 7
    REG_QWORD = 11

    def __init__(self):
        self.keys = {}
        self.deny_write = set()
        self.opened = []
        self.calls = []

    # -- helpers for tests -------------------------------------------------

    def _key(self, root, path, create=False):
        k = (root, path.lower())
        if k not in self.keys:
            if not create:
                raise FileNotFoundError(2, "The system cannot find the file specified", path)
            parts = path.split("\\")
            for i in range(1, len(parts) + 1):
                sub = "\\".join(parts[:i])
                self.keys.setdefault((root, sub.lower()), {"path": sub, "values": {}})
        return self.keys[k]

    def seed(self, root, path, name, value, code):
        self._key(root, path, create=True)["values"][name.lower()] = (name, value, code)

    def stored(self, root, path, name):
        return self.keys[(root, path.lower())]["values"].get(name.lower())

    @property
    def open_handles(self):
        return [h for h in self.opened if not h.closed]

    # -- winreg API ----------------------------------------------------------

    def OpenKey(self, root, path, reserved=0, access=KEY_READ):
        self.calls.append(("OpenKey", path, access))
        self._key(root, path)
        if access & self.KEY_SET_VALUE and path.lower() in self.deny_write:
            raise PermissionError(5, "Access is denied", path)
        h = FakeHKey(root, path, access)
        self.opened.append(h)
        return h

    def CreateKeyEx(self, root, path, reserved=0, access=KEY_WRITE):
        self.calls.append(("CreateKeyEx", path, access))
        if path.lower() in self.deny_write:
            raise PermissionError(5, "Access is denied", path)
        self._key(root, path, create=True)
        h = FakeHKey(root, path, access)
        self.opened.append(h)
        return h

    def CloseKey(self, h):
        h.closed = True

    def QueryValueEx(self, h, name):
        hit = self._key(h.root, h.path)["values"].get(name.lower())
        if hit is None:
            raise FileNotFoundError(2, "The system cannot find the file specified", name)
        return hit[1], hit[2]

    def SetValueEx(self, h, name, reserved, code, value):
        self.calls.append(("SetValueEx", h.path, name, code, value))
        values = self._key(h.root, h.path)["values"]
        prev = values.get(name.lower())
        values[name.lower()] = (prev[0] if prev else name, value, code)

    def DeleteValue(self, h, name):
        self.calls.append(("DeleteValue", h.path, name))
        values = self._key(h.root, h.path)["values"]
        if name.lower() not in values:
            raise FileNotFoundError(2, "The system cannot find the file specified", name)
        del values[name.lower()]

    def _children(self, h):
        prefix = h.path.lower() + "\\"
        out = []
        for (root, low), k in self.keys.items():
            if root == h.root and low.startswith(prefix) and "\\" not in low[len(prefix):]:
                out.append(k["path"][len(prefix):])
        return sorted(out)

    def QueryInfoKey(self, h):
        return len(self._children(h)), len(self._key(h.root, h.path)["values"]), 0

    def EnumKey(self, h, i):
        return self._children(h)[i]

    def EnumValue(self, h, i):
        vals = list(self._key(h.root, h.path)["values"].values())
        return vals[i]
