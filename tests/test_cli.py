from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from nft_ptr.cli.main import app
from nft_ptr.session import NftPtrSession

runner = CliRunner()


def _trace(tmp_path: Path, *lines: str) -> Path:
    path = tmp_path / "trace.jsonl"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


TRACE_LINES = (
    json.dumps({"event": "ptr_initialize", "owner": "0x7ffd1000", "pc": "0x10", "type": "P3Cow"}),
    json.dumps({"event": "move", "owner": "0x7ffd1000", "previous_owner": 0, "value": "0x2a", "pc": "0x10", "type": "3Cow"}),
    json.dumps({"event": "move", "owner": 0, "previous_owner": "0x7ffd1000", "value": "0x2a", "pc": "0x10", "type": "3Cow"}),
    json.dumps({"event": "ptr_destroy", "owner": "0x7ffd1000"}),
)


@pytest.fixture
def fake_connect(monkeypatch, clean_env, make_w3, artifacts):
    """Route NftPtrSession.connect to an in-memory node; returns the node list."""
    nodes = []

    def install(**w3_kwargs):
        async def connect(cls, config=None):
            w3 = make_w3(**w3_kwargs)
            nodes.append(w3)
            return cls(w3, config, artifacts=artifacts)

        monkeypatch.setattr(NftPtrSession, "connect", classmethod(connect))
        return nodes

    return install


def test_demangle_prints_each_name():
    result = runner.invoke(app, ["demangle", "P3Cow", "_ZN3Cow3mooEv", "plain"])
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["Cow*", "Cow::moo()", "plain"]


def test_symbolize_unresolvable_pc():
    result = runner.invoke(app, ["symbolize", "0x10", "32"])
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["0x10\t10", "0x20\t20"]


def test_symbolize_rejects_garbage():
    result = runner.invoke(app, ["symbolize", "cow"])
    assert result.exit_code != 0


def test_replay_dry_run_summarizes(tmp_path: Path):
    trace = _trace(tmp_path, "# header", *TRACE_LINES)
    result = runner.invoke(app, ["replay", str(trace), "--dry-run"])
    assert result.exit_code == 0
    assert "4 events: 1 ptr_initialize, 2 move, 1 ptr_destroy" in result.stdout


def test_replay_malformed_trace_exits_1(tmp_path: Path):
    trace = _trace(tmp_path, TRACE_LINES[0], '{"event": "move"}')
    result = runner.invoke(app, ["replay", str(trace), "--dry-run"])
    assert result.exit_code == 1
    assert "line 2" in result.output


def test_replay_applies_events(tmp_path: Path, fake_connect):
    nodes = fake_connect()
    trace = _trace(tmp_path, *TRACE_LINES)

    result = runner.invoke(app, ["--log-level", "WARNING", "replay", str(trace)])

    assert result.exit_code == 0, result.output
    (w3,) = nodes
    kinds = [t["name"] for t in w3.transactions]
    assert kinds == ["NftPtrToken", "NftPtrOwner", "mintOrMove", "mintOrMove"]
    assert w3.provider.disconnected is True
    assert "Token contract: 0x" in result.stdout


def test_check_reports_account(fake_connect):
    fake_connect(network_id="5", chain_id=5)
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 0, result.output
    assert "Network id: 5" in result.stdout
    assert "Chain id:   5" in result.stdout
    assert "node signer" in result.stdout


def test_check_refuses_mainnet_with_exit_2(fake_connect):
    nodes = fake_connect(network_id="1")
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 2
    assert "Cowardly refusing" in result.output
    assert nodes[0].eth.accounts_queries == 0


def test_check_bad_config_exits_1(clean_env, monkeypatch):
    monkeypatch.setenv("NFT_PTR_NUM_CONFIRMATIONS", "many")
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 1
    assert "NFT_PTR_NUM_CONFIRMATIONS" in result.output


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("nft-ptr ")


def test_check_chain_id_failure_exits_1(fake_connect):
    nodes = fake_connect(network_id="5", chain_id=ConnectionError("node went away"))
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 1
    assert "Error: eth_chainId failed: node went away" in result.output
    assert nodes[0].provider.disconnected is True
