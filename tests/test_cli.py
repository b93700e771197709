"""Tests for the nsreg command line."""

import json

import pytest
from click.testing import CliRunner
from rich.console import Console

from nsreg import cli
from nsreg.core.identity import Keypair


@pytest.fixture
def env(tmp_path, monkeypatch):
    oracle = Keypair.generate()
    oracle_path = oracle.save(tmp_path / "oracle.json")
    monkeypatch.setenv("NSREG_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("NSREG_REGISTRY_DIR", str(tmp_path / "registry"))
    monkeypatch.setenv("NSREG_AUDIT_DIR", str(tmp_path / "audit"))
    monkeypatch.setenv("NSREG_KEYPAIR_PATH", str(tmp_path / "id.json"))
    monkeypatch.setenv("NSREG_ORACLE_IDENTITY", str(oracle.identity))
    monkeypatch.setattr(cli, "console", Console(width=200))
    return tmp_path, oracle_path


def _run(*args):
    return CliRunner().invoke(cli.main, list(args))


def test_keygen(env):
    tmp_path, _ = env
    result = _run("keygen")
    assert result.exit_code == 0, result.output
    assert (tmp_path / "id.json").exists()
    assert "Identity:" in result.output

    # Refuses to clobber an existing key
    assert _run("keygen").exit_code == 1
    assert _run("keygen", "--force").exit_code == 0


def test_publish_and_info(env):
    _run("keygen")
    result = _run("package", "publish", "@vovacodes/react-sunbeam")
    assert result.exit_code == 0, result.output
    assert "Published @vovacodes/react-sunbeam" in result.output

    info = _run("package", "info", "@vovacodes/react-sunbeam")
    assert info.exit_code == 0, info.output
    assert "react-sunbeam" in info.output

    again = _run("package", "publish", "@vovacodes/react-sunbeam")
    assert again.exit_code == 1
    assert "already in use" in again.output


def test_publish_rejects_malformed_id(env):
    _run("keygen")
    result = _run("package", "publish", "no-scope")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_publish_without_key(env):
    result = _run("package", "publish", "@vovacodes/react-sunbeam")
    assert result.exit_code == 1
    assert "keygen" in result.output


def test_register_requires_oracle(env):
    _run("keygen")
    result = _run("author", "register", "alice")
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_register_info_unregister(env):
    tmp_path, oracle_path = env
    _run("keygen")

    result = _run("author", "register", "alice", "--oracle-keypair", str(oracle_path))
    assert result.exit_code == 0, result.output
    assert "Registered alice" in result.output

    info = _run("author", "info", "alice")
    assert info.exit_code == 0, info.output
    assert "alice" in info.output

    listing = _run("list")
    assert listing.exit_code == 0, listing.output
    assert "alice" in listing.output

    # Another identity cannot unregister alice
    other = Keypair.generate().save(tmp_path / "other.json")
    assert _run("author", "unregister", "alice", "-k", str(other)).exit_code == 1

    result = _run("author", "unregister", "alice")
    assert result.exit_code == 0, result.output
    assert "80 bytes returned" in result.output
    assert _run("author", "info", "alice").exit_code == 1


def test_author_address(env):
    result = _run("author", "address", "alice")
    assert result.exit_code == 0, result.output
    assert "disambiguator" in result.output


def test_empty_list(env):
    result = _run("list")
    assert result.exit_code == 0
    assert "empty" in result.output


def test_audit_formats(env):
    _run("keygen")
    _run("package", "publish", "@vovacodes/react-sunbeam")
    _run("package", "publish", "@vovacodes/react-sunbeam")

    result = _run("audit", "--format", "json")
    assert result.exit_code == 0, result.output
    events = json.loads(result.output)
    assert [e["success"] for e in events].count(False) == 1

    csv_output = _run("audit", "--format", "csv", "--action", "publish_package").output
    assert csv_output.splitlines()[0].startswith("id,timestamp")

    table = _run("audit")
    assert table.exit_code == 0
    assert "already_exists" in table.output
