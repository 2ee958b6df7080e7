"""Tests for proposal / simulation data models."""

from simulator.models import CallTrace, DestinationSimulation, ProposalExecution, SimulationResult


class TestProposalExecution:

    def test_from_collector_json(self):
        proposal = ProposalExecution.from_dict({
            "id": "0x2a",
            "proposer": "0x9999999999999999999999999999999999999999",
            "targets": ["0x1111111111111111111111111111111111111111"] * 2,
            "values": ["1000", 0],
            "calldatas": ["a9059cbb"],
            "description": "# Fund the grants program\n\nDetails",
            "metadata": {"voting_start_block": 100, "voting_end_block": 200},
        })
        assert proposal.id == 42
        assert proposal.values == (1000, 0)
        assert proposal.calldatas == ("0xa9059cbb", "0x")
        assert proposal.signatures == ("", "")
        assert proposal.start_block == 100
        assert proposal.end_block == 200
        assert proposal.title == "Fund the grants program"


class TestCallTrace:

    def test_tolerates_null_fields(self):
        trace = CallTrace.from_dict({
            "to": "0x1111111111111111111111111111111111111111",
            "input": None,
            "value": "0x10",
            "calls": [None, {"to": None, "type": "delegatecall"}],
        })
        assert trace.input == "0x"
        assert trace.value == 16
        assert len(trace.calls) == 1
        assert trace.calls[0].to is None
        assert trace.calls[0].type == "DELEGATECALL"

    def test_deep_json_builds_without_recursion(self):
        raw = {"to": "0x1111111111111111111111111111111111111111", "input": "0x01"}
        for _ in range(3000):
            raw = {"to": "0x2222222222222222222222222222222222222222", "input": "0x02", "calls": [raw]}
        trace = CallTrace.from_dict(raw)
        depth = 0
        while trace.calls:
            trace = trace.calls[0]
            depth += 1
        assert depth == 3000


class TestSimulationResult:

    def test_camel_case_keys(self):
        sim = SimulationResult.from_dict({
            "status": True,
            "callTrace": {"to": "0x1111111111111111111111111111111111111111", "input": "0x"},
            "touchedContractAddresses": ["0x2222222222222222222222222222222222222222"],
            "contracts": [{"address": "0x2222222222222222222222222222222222222222", "contract_name": "Token"}],
            "logs": [{"name": "Transfer", "raw": {"address": "0x2222222222222222222222222222222222222222"},
                      "inputs": [{"soltype": {"name": "value"}, "value": "5"}]}],
            "value": "0",
        })
        assert sim.to == "0x1111111111111111111111111111111111111111"
        assert sim.touched_contract_addresses == ["0x2222222222222222222222222222222222222222"]
        assert sim.contract_name("0x2222222222222222222222222222222222222222") == "Token"
        assert sim.logs[0].address == "0x2222222222222222222222222222222222222222"
        assert sim.logs[0].inputs == [("value", "5")]


class TestDestinationSimulation:

    def test_failed_destination_has_no_sim(self):
        destination = DestinationSimulation.from_dict({"chainId": 10, "error": "bridge message not found"})
        assert destination.chain_id == 10
        assert destination.sim is None
        assert destination.status == "failure"
