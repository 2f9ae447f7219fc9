"""Tests for the package-lock.json loader."""

import pytest

from conftest import write_json
from deepgraph.parsers.npm_lock import build_installed_tree, load_installed_tree


def _by_location(nodes):
    return {n.location: n for n in nodes}


# ── lockfileVersion 2/3 ──


class TestPackagesSection:
    def test_nodes_and_edges(self):
        data = {
            "name": "app",
            "lockfileVersion": 3,
            "packages": {
                "": {"name": "app", "dependencies": {"express": "^4.18.0"}},
                "node_modules/express": {
                    "version": "4.18.2",
                    "dependencies": {"accepts": "~1.3.8", "body-parser": "1.20.1"},
                },
                "node_modules/accepts": {"version": "1.3.8"},
                "node_modules/body-parser": {"version": "1.20.1"},
            },
        }
        nodes = build_installed_tree(data)
        assert [n.name for n in nodes] == ["express", "accepts", "body-parser"]
        express = nodes[0]
        assert express.version == "4.18.2"
        assert express.edges_out == ["accepts", "body-parser"]

    def test_nested_copy_resolves_first(self):
        data = {
            "packages": {
                "": {"name": "app"},
                "node_modules/a": {"version": "1.0.0", "dependencies": {"b": "^3"}},
                "node_modules/b": {"version": "2.0.0"},
                "node_modules/a/node_modules/b": {"version": "3.0.0"},
                "node_modules/c": {"version": "1.0.0", "dependencies": {"b": "^2"}},
            },
        }
        nodes = _by_location(build_installed_tree(data))
        assert nodes["node_modules/a/node_modules/b"].name == "b"
        assert nodes["node_modules/a/node_modules/b"].version == "3.0.0"
        assert nodes["node_modules/a"].edges_out == ["b"]
        assert nodes["node_modules/c"].edges_out == ["b"]

    def test_hoisted_copies_come_first(self):
        # lock keys are sorted by path, so a nested copy can precede the hoisted one
        data = {
            "packages": {
                "": {"name": "app"},
                "node_modules/a": {"version": "1.0.0"},
                "node_modules/a/node_modules/b": {"version": "3.0.0"},
                "node_modules/b": {"version": "2.0.0"},
                "node_modules/c": {"version": "1.0.0"},
            },
        }
        nodes = build_installed_tree(data)
        assert [(n.name, n.version) for n in nodes] == [
            ("a", "1.0.0"), ("b", "2.0.0"), ("c", "1.0.0"), ("b", "3.0.0"),
        ]

    def test_unresolvable_dependency_dropped(self):
        data = {
            "packages": {
                "": {},
                "node_modules/a": {"version": "1.0.0", "dependencies": {"missing": "^1"}},
            },
        }
        assert build_installed_tree(data)[0].edges_out == []

    def test_scoped_names(self):
        data = {
            "packages": {
                "": {},
                "node_modules/@types/node": {"version": "20.1.0"},
                "node_modules/ts-node": {
                    "version": "10.9.1",
                    "peerDependencies": {"@types/node": "*"},
                },
            },
        }
        nodes = _by_location(build_installed_tree(data))
        assert nodes["node_modules/@types/node"].name == "@types/node"
        assert nodes["node_modules/ts-node"].edges_out == ["@types/node"]

    def test_workspace_links(self):
        data = {
            "name": "app",
            "packages": {
                "": {"name": "app", "workspaces": ["packages/*"]},
                "node_modules/ui": {"resolved": "packages/ui", "link": True},
                "packages/ui": {
                    "name": "ui",
                    "version": "0.1.0",
                    "devDependencies": {"jest": "^29.0.0"},
                },
                "node_modules/jest": {"version": "29.5.0"},
            },
        }
        nodes = build_installed_tree(data)
        names = [n.name for n in nodes]
        assert names == ["ui", "jest"]
        # the workspace folder keeps its dev edges
        assert nodes[0].edges_out == ["jest"]

    def test_root_package_skipped(self):
        data = {
            "packages": {
                "": {"name": "app", "version": "1.0.0"},
                "node_modules/app": {"version": "1.0.0"},
            },
        }
        assert build_installed_tree(data) == []

    def test_missing_version_defaults(self):
        data = {"packages": {"": {}, "node_modules/a": {}}}
        assert build_installed_tree(data)[0].version == "1.0.0"


# ── lockfileVersion 1 ──


class TestDependenciesSection:
    def test_nested_requires(self):
        data = {
            "name": "app",
            "lockfileVersion": 1,
            "dependencies": {
                "a": {
                    "version": "1.0.0",
                    "requires": {"b": "^2.0.0"},
                    "dependencies": {
                        "b": {"version": "2.5.0"},
                    },
                },
                "b": {"version": "1.0.0"},
            },
        }
        nodes = _by_location(build_installed_tree(data))
        assert set(nodes) == {
            "node_modules/a",
            "node_modules/a/node_modules/b",
            "node_modules/b",
        }
        assert nodes["node_modules/a"].edges_out == ["b"]
        assert nodes["node_modules/a/node_modules/b"].version == "2.5.0"


# ── File Loading ──


class TestLoadInstalledTree:
    def test_load(self, tmp_path):
        path = write_json(tmp_path / "package-lock.json", {
            "packages": {"": {}, "node_modules/left-pad": {"version": "1.3.0"}},
        })
        nodes = load_installed_tree(str(path))
        assert [(n.name, n.version) for n in nodes] == [("left-pad", "1.3.0")]

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "package-lock.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError):
            load_installed_tree(str(path))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "package-lock.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_installed_tree(str(path))
