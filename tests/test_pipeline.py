"""Tests for the audit pipeline and CLI entry point."""

import argparse
import json

import pytest

from auditor.config import RunConfig
from auditor.pipeline import ProposalAuditPipeline, load_destination, main, parse_destination_arg
from simulator.chain import ChainDataProvider
from checks import ChainStatus

from conftest import (
    ADDR_A,
    ADDR_B,
    GOVERNOR,
    SELFDESTRUCT_CODE,
    TIMELOCK,
    FakeFactory,
    FakeProvider,
    make_proposal,
    make_sim,
)


def test_parse_destination_arg():
    assert parse_destination_arg("42161=sims/arb.json") == (42161, "sims/arb.json")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_destination_arg("arbitrum")


def test_load_destination_from_bare_simulation():
    destination = load_destination(10, {"callTrace": {"to": ADDR_A, "input": "0x01"}})
    assert destination.chain_id == 10
    assert destination.sim.chain_id == 10
    assert destination.sim.to == ADDR_A


def test_main_exits_nonzero_on_configuration_error(monkeypatch, tmp_path):
    monkeypatch.delenv("DAO_NAME", raising=False)
    monkeypatch.chdir(tmp_path)
    assert main(["--simulation", "sim.json"]) == 1


@pytest.mark.asyncio
async def test_pipeline_end_to_end(tmp_path, cache, explorer):
    config = RunConfig(
        dao_name="Test DAO",
        governor_address=GOVERNOR,
        timelock_address=TIMELOCK,
        cache_dir=tmp_path / "cache",
    )
    provider = FakeProvider(codes={ADDR_A: SELFDESTRUCT_CODE}, nonces={ADDR_B: 1})
    pipeline = ProposalAuditPipeline(config, factory=FakeFactory(explorer), cache=cache, providers={1: provider})

    proposal = make_proposal([ADDR_A, ADDR_B])
    report = await pipeline.run(proposal, make_sim())
    output = pipeline.save_report(report, proposal, tmp_path / "reports" / "report.json")
    await pipeline.close()

    assert report.origin.status == ChainStatus.ERROR
    data = json.loads(output.read_text())
    assert data["dao"] == "Test DAO"
    assert data["proposal"]["id"] == 42
    assert data["origin"]["status"] == "error"
    assert data["origin"]["checks"]["check_targets_no_selfdestruct"]["result"]["errors"] == [
        f"[{ADDR_A}](https://etherscan.io/address/{ADDR_A}): Contract (with SELFDESTRUCT)"
    ]


def test_pipeline_does_not_modify_injected_providers(monkeypatch, tmp_path, cache, explorer):
    monkeypatch.setenv("RPC_URL_10", "http://127.0.0.1:9545")
    config = RunConfig(
        dao_name="Test DAO",
        governor_address=GOVERNOR,
        timelock_address=TIMELOCK,
        cache_dir=tmp_path / "cache",
        chain_ids=[1, 10],
    )
    providers = {1: FakeProvider()}

    pipeline = ProposalAuditPipeline(config, factory=FakeFactory(explorer), cache=cache, providers=providers)

    assert list(providers) == [1]
    assert isinstance(pipeline.providers[10], ChainDataProvider)
    assert pipeline.providers[1] is providers[1]
