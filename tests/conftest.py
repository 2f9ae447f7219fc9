"""Shared test fixtures for deepgraph tests."""

import json
import sys
from pathlib import Path

import pytest

# Make the deepgraph package importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


def write_bytes(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


def install(node_modules: Path, name: str, version: str, deps=None, **extra) -> Path:
    """Create ``node_modules/<name>/package.json``."""
    pkg_dir = node_modules / name
    manifest = {"name": name, "version": version, **extra}
    if deps:
        manifest["dependencies"] = deps
    write_json(pkg_dir / "package.json", manifest)
    return pkg_dir


@pytest.fixture
def monorepo(tmp_path):
    """Root app plus two workspace packages, a yarn.lock and node_modules.

    web -> ui (workspace), react (installed)
    ui  -> react, lodash
    react -> loose-envify -> js-tokens
    """
    write_json(tmp_path / "package.json", {
        "name": "monorepo",
        "version": "0.1.0",
        "devDependencies": {"typescript": "^5.0.0"},
    })
    write_json(tmp_path / "packages" / "web" / "package.json", {
        "name": "web",
        "version": "1.0.0",
        "dependencies": {"ui": "workspace:*", "react": "^18.2.0"},
    })
    write_json(tmp_path / "packages" / "ui" / "package.json", {
        "name": "ui",
        "version": "2.0.0",
        "dependencies": {"react": "^18.2.0", "lodash": "^4.17.21"},
    })
    write_bytes(tmp_path / "packages" / "ui" / "src" / "index.ts", 3000)

    (tmp_path / "yarn.lock").write_text(
        "# yarn lockfile v1\n"
        "\n"
        "\n"
        "js-tokens@^4.0.0:\n"
        '  version "4.0.0"\n'
        "\n"
        "lodash@^4.17.21:\n"
        '  version "4.17.21"\n'
        "\n"
        "loose-envify@^1.1.0:\n"
        '  version "1.4.0"\n'
        "  dependencies:\n"
        '    js-tokens "^3.0.0 || ^4.0.0"\n'
        "\n"
        "react@^18.2.0:\n"
        '  version "18.2.0"\n'
        "  dependencies:\n"
        "    loose-envify \"^1.1.0\"\n"
    )

    nm = tmp_path / "node_modules"
    react = install(nm, "react", "18.2.0", {"loose-envify": "^1.1.0"}, main="index.js")
    write_bytes(react / "index.js", 2048)
    install(nm, "loose-envify", "1.4.0", {"js-tokens": "^4.0.0"})
    install(nm, "js-tokens", "4.0.0")
    lodash = install(nm, "lodash", "4.17.21", files=["lodash.js"])
    write_bytes(lodash / "lodash.js", 5000)
    install(nm, "typescript", "5.1.6")
    return tmp_path
