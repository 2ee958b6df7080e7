"""Tests for check ordering, per-check error isolation and multi-chain aggregation."""

import asyncio

import pytest

from auditor.errors import ConfigurationError
from checks.base import CheckResult, ProposalCheck, to_address_link
from checks.no_selfdestruct import CheckTargetsNoSelfdestruct
from checks.runner import (
    ChainStatus,
    execution_order,
    run_all_chains,
    run_checks_for_chain,
)
from simulator.models import CallTrace, DestinationSimulation

from conftest import ADDR_A, ADDR_B, SAFE_CODE, FakeProvider, make_context, make_proposal, make_sim


class RecordingCheck(ProposalCheck):

    def __init__(self, check_id, log, result=None, depends_on=(), touched_only=False, delay=0.0):
        self.id = check_id
        self.name = f"Recording check {check_id}"
        self.depends_on = tuple(depends_on)
        self.touched_only = touched_only
        self.log = log
        self.result = result or CheckResult(info=[f"{check_id} ran"])
        self.delay = delay

    async def check(self, proposal, sim, ctx, destinations=None):
        await asyncio.sleep(self.delay)
        self.log.append((self.id, ctx.chain_id))
        return self.result


class FailingCheck(ProposalCheck):
    id = "check_broken"
    name = "Always raises"

    async def check(self, proposal, sim, ctx, destinations=None):
        raise ValueError("unexpected null address")


class TestExecutionOrder:

    def test_dependency_runs_first(self):
        log = []
        static = RecordingCheck("check_static_analysis", log, depends_on=["check_compile"])
        compile_ = RecordingCheck("check_compile", log)
        other = RecordingCheck("check_other", log)

        generations = execution_order([static, compile_, other])

        assert [[c.id for c in g] for g in generations] == [
            ["check_compile", "check_other"],
            ["check_static_analysis"],
        ]

    def test_unknown_dependency_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            execution_order([RecordingCheck("check_a", [], depends_on=["check_missing"])])

    def test_cycle_is_configuration_error(self):
        a = RecordingCheck("check_a", [], depends_on=["check_b"])
        b = RecordingCheck("check_b", [], depends_on=["check_a"])
        with pytest.raises(ConfigurationError):
            execution_order([a, b])


class TestRunChecksForChain:

    @pytest.mark.asyncio
    async def test_dependent_check_sees_artifact(self, cache):
        class Compile(ProposalCheck):
            id = "check_compile"
            name = "Compile"

            async def check(self, proposal, sim, ctx, destinations=None):
                await asyncio.sleep(0.01)
                ctx.artifacts["build"] = "archive.zip"
                return CheckResult(info=["compiled"])

        class Analyze(ProposalCheck):
            id = "check_static_analysis"
            name = "Static analysis"
            depends_on = ("check_compile",)

            async def check(self, proposal, sim, ctx, destinations=None):
                return CheckResult(info=[f"analyzed {ctx.artifacts['build']}"])

        ctx = make_context(FakeProvider(), cache)
        results = await run_checks_for_chain([Analyze(), Compile()], make_proposal([ADDR_A]), make_sim(), ctx)

        assert results["check_static_analysis"].result.info == ["analyzed archive.zip"]

    @pytest.mark.asyncio
    async def test_failing_check_becomes_single_error(self, cache):
        log = []
        ctx = make_context(FakeProvider(), cache)
        checks = [FailingCheck(), RecordingCheck("check_ok", log)]

        results = await run_checks_for_chain(checks, make_proposal([ADDR_A]), make_sim(), ctx)

        assert results["check_broken"].name == "Always raises"
        assert results["check_broken"].result.errors == ["Check failed with ValueError: unexpected null address"]
        assert results["check_ok"].result.info == ["check_ok ran"]

    @pytest.mark.asyncio
    async def test_touched_checks_skipped_on_destination_chain(self, cache):
        log = []
        ctx = make_context(FakeProvider(chain_id=10), cache, chain_id=10)
        checks = [RecordingCheck("check_touched", log, touched_only=True), RecordingCheck("check_targets", log)]

        results = await run_checks_for_chain(checks, make_proposal([ADDR_A]), make_sim(chain_id=10), ctx)

        assert list(results) == ["check_targets"]


class TestRunAllChains:

    @pytest.mark.asyncio
    async def test_statuses_are_per_chain(self, cache):
        log = []
        warn = CheckResult(warnings=["heads up"])
        checks = [RecordingCheck("check_touched", log, result=warn, touched_only=True),
                  RecordingCheck("check_targets", log)]
        origin = make_context(FakeProvider(), cache)
        destinations = [
            DestinationSimulation(10, "OptimismL1L2", "success", make_sim(chain_id=10)),
            DestinationSimulation(8453, "OptimismL1L2", "failure", None, "message not relayed"),
        ]
        contexts = {10: make_context(FakeProvider(chain_id=10), cache, chain_id=10)}

        report = await run_all_chains(checks, make_proposal([ADDR_A]), make_sim(), origin, destinations, contexts)

        assert report.origin.status == ChainStatus.WARNING
        assert list(report.destinations) == [10]
        assert report.destinations[10].status == ChainStatus.SUCCESS
        assert report.statuses == {1: ChainStatus.WARNING, 10: ChainStatus.SUCCESS}
        data = report.to_dict()
        assert data["origin"]["status"] == "warning"
        assert data["destinations"]["10"]["checks"]["check_targets"]["result"]["info"] == ["check_targets ran"]

    @pytest.mark.asyncio
    async def test_missing_destination_context_aborts_before_checks(self, cache):
        log = []
        destinations = [DestinationSimulation(10, "OptimismL1L2", "success", make_sim(chain_id=10))]

        with pytest.raises(ConfigurationError):
            await run_all_chains([RecordingCheck("check_a", log)], make_proposal([ADDR_A]), make_sim(),
                                 make_context(FakeProvider(), cache), destinations, {})
        assert log == []

    @pytest.mark.asyncio
    async def test_simulations_for_the_same_chain_are_merged(self, cache):
        log = []
        checks = [RecordingCheck("check_targets", log), CheckTargetsNoSelfdestruct()]
        destinations = [
            DestinationSimulation(10, "OptimismL1L2", "success",
                                  make_sim(chain_id=10, calls=[CallTrace(to=ADDR_A, input="0x01")])),
            DestinationSimulation(10, "OptimismL1L2", "success",
                                  make_sim(chain_id=10, calls=[CallTrace(to=ADDR_B, input="0x02")])),
        ]
        provider = FakeProvider(chain_id=10, codes={ADDR_A: SAFE_CODE}, nonces={ADDR_B: 1})
        contexts = {10: make_context(provider, cache, chain_id=10)}

        report = await run_all_chains(checks, make_proposal([]), make_sim(), make_context(FakeProvider(), cache),
                                      destinations, contexts)

        assert log.count(("check_targets", 10)) == 1
        info = report.destinations[10].checks["check_targets_no_selfdestruct"].result.info
        base_url = contexts[10].block_explorer_url
        assert f"{to_address_link(ADDR_A, base_url)}: Contract (looks safe)" in info
        assert f"{to_address_link(ADDR_B, base_url)}: EOA" in info
