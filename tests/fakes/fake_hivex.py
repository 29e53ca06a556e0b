# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Minimal python-hivex double: a node tree with the subset of the Hivex API
the offline backend calls. Node ids start at 1 (0 means "no node").
"""
from types import SimpleNamespace


class FakeHivex:
    def __init__(self, path, write=0):
        self.path = path
        self.write = write
        self.nodes = {1: {"name": "ROOT", "children": [], "values": []}}
        self._next = 2
        self._vh = {}
        self.commits = 0
        self.closed = False

    # -- test helpers ----------------------------------------------------

    def add_path(self, parts):
        node = 1
        for name in parts:
            child = self.node_get_child(node, name)
            node = child if child else self.node_add_child(node, name)
        return node

    def find(self, parts):
        node = 1
        for name in parts:
            node = self.node_get_child(node, name)
            if not node:
                return None
        return node

    def raw(self, node, key):
        for v in self.nodes[node]["values"]:
            if v["key"].lower() == key.lower():
                return v["t"], v["value"]
        return None

    # -- hivex API -------------------------------------------------------

    def root(self):
        return 1

    def node_get_child(self, node, name):
        for ch in self.nodes[node]["children"]:
            if self.nodes[ch]["name"].lower() == name.lower():
                return ch
        return None

    def node_add_child(self, node, name):
        nid = self._next
        self._next += 1
        self.nodes[nid] = {"name": name, "children": [], "values": []}
        self.nodes[node]["children"].append(nid)
        return nid

    def node_children(self, node):
        return list(self.nodes[node]["children"])

    def node_name(self, node):
        return self.nodes[node]["name"]

    def node_values(self, node):
        out = []
        for i, v in enumerate(self.nodes[node]["values"]):
            vh = node * 1000 + i + 1
            self._vh[vh] = v
            out.append(vh)
        return out

    def value_key(self, vh):
        return self._vh[vh]["key"]

    def value_value(self, vh):
        v = self._vh[vh]
        return v["t"], v["value"]

    def node_set_value(self, node, val):
        vals = self.nodes[node]["values"]
        for i, v in enumerate(vals):
            if v["key"].lower() == val["key"].lower():
                vals[i] = dict(val)
                return
        vals.append(dict(val))

    def node_set_values(self, node, vals):
        self.nodes[node]["values"] = [dict(v) for v in vals]

    def commit(self, filename):
        self.commits += 1

    def close(self):
        self.closed = True


def fake_hivex_module(instance=None):
    """Module-shaped object whose Hivex() returns `instance` (or a fresh one)."""
    created = []

    def _factory(path, write=0):
        h = instance if instance is not None else FakeHivex(path, write)
        h.path, h.write = path, write
        created.append(h)
        return h

    return SimpleNamespace(Hivex=_factory, created=created)
