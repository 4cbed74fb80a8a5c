import pytest

from grading.errors import EntryPointNotFound
from grading.managers.entry_point_resolver import (
    EntryPointResolver,
    GenericStartCommand,
    KnownFile,
    ManifestMain,
    ManifestStartScript,
)


@pytest.fixture
def resolver():
    return EntryPointResolver(node_executable="node", npm_executable="npm")


def test_index_js_wins_over_server_js(resolver, make_submission_dir):
    root = make_submission_dir(files={"server.js": "", "index.js": ""}, manifest={"main": "server.js"})

    entry_point = resolver.find_entry_point(root / "backend")

    assert entry_point == KnownFile(path="index.js")


def test_file_scan_beats_start_script(resolver, make_submission_dir):
    root = make_submission_dir(
        files={"app.js": "", "bin/www.js": ""},
        manifest={"scripts": {"start": "node bin/www.js"}},
    )

    assert resolver.find_entry_point(root / "backend") == KnownFile(path="app.js")


def test_nested_candidate(resolver, make_submission_dir):
    root = make_submission_dir(files={"src/server.js": ""}, manifest={})

    spec = resolver.resolve(root / "backend", port=3000)

    assert spec.argv == ["node", "src/server.js"]
    assert spec.cwd == root / "backend"
    assert dict(spec.env)["PORT"] == "3000"


def test_manifest_main(resolver, make_submission_dir):
    root = make_submission_dir(files={"lib/start.js": ""}, manifest={"main": "lib/start.js"})

    assert resolver.find_entry_point(root / "backend") == ManifestMain(path="lib/start.js")


def test_manifest_main_missing_file_falls_through(resolver, make_submission_dir):
    root = make_submission_dir(manifest={"main": "gone.js", "scripts": {"start": "nodemon app"}})

    entry_point = resolver.find_entry_point(root / "backend")

    assert entry_point == GenericStartCommand(script="nodemon app")


def test_start_script_with_flags(resolver, make_submission_dir):
    root = make_submission_dir(
        files={"bin/www.js": ""},
        manifest={"scripts": {"start": "node --inspect bin/www.js"}},
    )

    entry_point = resolver.find_entry_point(root / "backend")

    assert entry_point == ManifestStartScript(path="bin/www.js", script="node --inspect bin/www.js")


def test_generic_npm_start(resolver, make_submission_dir):
    root = make_submission_dir(manifest={"scripts": {"start": "ts-node src/main.ts"}})

    spec = resolver.resolve(root / "backend", port=4000, host="127.0.0.1")

    assert spec.argv == ["npm", "start"]
    assert spec.base_url == "http://127.0.0.1:4000"


def test_no_manifest_and_no_candidate(resolver, make_submission_dir):
    root = make_submission_dir(files={"readme.txt": ""})

    with pytest.raises(EntryPointNotFound, match="entry_point_not_found"):
        resolver.find_entry_point(root / "backend")


def test_manifest_without_main_or_start(resolver, make_submission_dir):
    root = make_submission_dir(manifest={"name": "recipes", "scripts": {"test": "jest"}})

    with pytest.raises(EntryPointNotFound, match="no usable main or start script"):
        resolver.find_entry_point(root / "backend")


def test_unreadable_manifest(resolver, make_submission_dir):
    root = make_submission_dir()
    (root / "backend" / "package.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(EntryPointNotFound, match="manifest_unreadable"):
        resolver.find_entry_point(root / "backend")
