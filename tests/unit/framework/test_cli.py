"""
Tests for the strata command-line interface.
"""

import json

import pytest

from strata.framework.cli.main import create_parser, main


@pytest.fixture
def configs(tmp_path):
    directory = tmp_path / "Configs"
    directory.mkdir()
    (directory / "app.json").write_text(
        json.dumps({"database": {"host": "localhost", "port": 5432}}), encoding="utf-8"
    )
    (directory / "app.production.json").write_text(
        json.dumps({"database": {"host": "prod-db"}}), encoding="utf-8"
    )
    return directory


def test_parser_has_all_commands():
    parser = create_parser()
    for argv in (
        ["show", "app.json"],
        ["set", "app.json", "a.b", "1"],
        ["backup", "app.json"],
        ["restore", "app.json", "app.1.json"],
        ["backups", "app.json"],
        ["ini-get", "f.ini", "s", "k"],
        ["ini-set", "f.ini", "s", "k", "v"],
        ["ini-validate", "f.ini"],
        ["ini-merge", "a.ini", "b.ini"],
    ):
        assert parser.parse_args(argv).command == argv[0]


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: strata" in capsys.readouterr().out


def test_show_with_environment(configs, capsys):
    assert main(["show", "app.json", "--env", "production", "--dir", str(configs)]) == 0
    output = capsys.readouterr().out
    assert json.loads(output) == {"database": {"host": "prod-db", "port": 5432}}


def test_show_missing(configs, capsys):
    assert main(["show", "missing.json", "--dir", str(configs)]) == 1
    assert "not found" in capsys.readouterr().out


def test_show_malformed_file(configs, capsys):
    (configs / "bad.json").write_text("{", encoding="utf-8")
    assert main(["show", "bad.json", "--dir", str(configs)]) == 1
    assert "FORMAT_ERROR" in capsys.readouterr().out


def test_set_parses_json_literals(configs):
    assert main(["set", "app.json", "database.port", "5433", "--dir", str(configs)]) == 0
    assert main(["set", "app.json", "database.host", "db.internal", "--dir", str(configs)]) == 0
    tree = json.loads((configs / "app.json").read_text(encoding="utf-8"))
    assert tree == {"database": {"host": "db.internal", "port": 5433}}


def test_set_missing_segment_fails(configs, capsys):
    before = (configs / "app.json").read_bytes()
    assert main(["set", "app.json", "cache.ttl", "1", "--dir", str(configs)]) == 1
    assert "PATH_NOT_FOUND" in capsys.readouterr().out
    assert (configs / "app.json").read_bytes() == before


def test_backup_list_and_restore(configs, capsys):
    original = (configs / "app.json").read_bytes()
    assert main(["backup", "app.json", "--dir", str(configs)]) == 0
    (backup_name,) = [p.name for p in (configs / "Backups").iterdir()]

    assert main(["backups", "app.json", "--dir", str(configs)]) == 0
    assert backup_name in capsys.readouterr().out

    assert main(["set", "app.json", "database.port", "1", "--dir", str(configs)]) == 0
    assert main(["restore", "app.json", backup_name, "--dir", str(configs)]) == 0
    assert (configs / "app.json").read_bytes() == original


def test_restore_without_current_file_warns(configs, capsys):
    assert main(["backup", "app.json", "--dir", str(configs)]) == 0
    (backup_name,) = [p.name for p in (configs / "Backups").iterdir()]
    original = (configs / "app.json").read_bytes()
    (configs / "app.json").unlink()
    capsys.readouterr()

    assert main(["restore", "app.json", backup_name, "--dir", str(configs)]) == 0
    assert "no safety backup was taken" in capsys.readouterr().out
    assert (configs / "app.json").read_bytes() == original


def test_restore_unknown_backup(configs, capsys):
    assert main(["restore", "app.json", "app.1.json", "--dir", str(configs)]) == 1
    assert "NOT_FOUND" in capsys.readouterr().out


def test_ini_commands(tmp_path, capsys):
    path = tmp_path / "settings.ini"
    assert main(["ini-set", str(path), "db", "port", "5432"]) == 0
    capsys.readouterr()

    assert main(["ini-get", str(path), "db", "port"]) == 0
    assert capsys.readouterr().out.strip() == "5432"

    assert main(["ini-get", str(path), "db", "missing", "--default", "none"]) == 0
    assert capsys.readouterr().out.strip() == "none"

    assert main(["ini-validate", str(path)]) == 0

    path.write_text("orphan=1\n", encoding="utf-8")
    assert main(["ini-validate", str(path)]) == 1


def test_ini_merge(tmp_path):
    source = tmp_path / "source.ini"
    target = tmp_path / "target.ini"
    source.write_text("[db]\nhost=prod\n", encoding="utf-8")
    target.write_text("[db]\nhost=localhost\nport=5432\n", encoding="utf-8")
    assert main(["ini-merge", str(source), str(target)]) == 0
    assert target.read_text(encoding="utf-8") == "[db]\nhost=prod\nport=5432\n\n"
