"""Shared fixtures: fake chain-data provider, fake explorer backend, tmp-dir cache."""

from typing import Dict, List, Optional

import pytest
from web3 import Web3

from auditor.config import get_chain_config
from auditor.errors import TransientNetworkError
from checks.base import CheckContext
from explorer.cache import VerificationStatusCache
from simulator.models import CallTrace, ProposalExecution, SimulationResult


GOVERNOR = Web3.to_checksum_address("0x408ed6354d4973f66138c91495f2f2fcbd8724c3")
TIMELOCK = Web3.to_checksum_address("0x1a9c8182c09f50c8318d769245bea52c32be35bc")

ADDR_A = Web3.to_checksum_address("0x" + "aa" * 20)
ADDR_B = Web3.to_checksum_address("0x" + "bb" * 20)
ADDR_C = Web3.to_checksum_address("0x" + "cc" * 20)

# PUSH1 0x00, SELFDESTRUCT
SELFDESTRUCT_CODE = bytes.fromhex("6000ff")
# PUSH1 0x00, DELEGATECALL, STOP
DELEGATECALL_CODE = bytes.fromhex("6000f400")
# PUSH1 0x80, PUSH1 0x40, MSTORE, STOP
SAFE_CODE = bytes.fromhex("6080604052" + "00")


class FakeProvider:
    """Chain-data provider backed by dicts (addresses compared lower-case).

    `nonce_failures` maps an address to how many times its nonce read raises TransientNetworkError.
    """

    def __init__(self, chain_id: int = 1, codes: Optional[Dict[str, bytes]] = None,
                 nonces: Optional[Dict[str, int]] = None, nonce_failures: Optional[Dict[str, int]] = None):
        self.chain_id = chain_id
        self.codes = {k.lower(): v for k, v in (codes or {}).items()}
        self.nonces = {k.lower(): v for k, v in (nonces or {}).items()}
        self.nonce_failures = {k.lower(): v for k, v in (nonce_failures or {}).items()}
        self.code_calls: List[str] = []

    async def get_code(self, address: str) -> bytes:
        self.code_calls.append(address)
        return self.codes.get(address.lower(), b"")

    async def get_transaction_count(self, address: str) -> int:
        if self.nonce_failures.get(address.lower(), 0) > 0:
            self.nonce_failures[address.lower()] -= 1
            raise TransientNetworkError("rpc hiccup")
        return self.nonces.get(address.lower(), 0)


class FakeExplorer:
    """Explorer backend that records calls; `failures` raises TransientNetworkError that many times."""

    name = "FakeExplorer"

    def __init__(self, verified: Optional[List[str]] = None, abis: Optional[Dict[str, list]] = None,
                 failures: int = 0):
        self.verified = {a.lower() for a in (verified or [])}
        self.abis = {k.lower(): v for k, v in (abis or {}).items()}
        self.failures = failures
        self.verification_calls = 0
        self.abi_calls = 0

    def _maybe_fail(self):
        if self.failures > 0:
            self.failures -= 1
            raise TransientNetworkError("simulated outage")

    async def is_contract_verified(self, address: str, chain_id: int) -> bool:
        self.verification_calls += 1
        self._maybe_fail()
        return address.lower() in self.verified

    async def fetch_contract_abi(self, address: str, chain_id: int):
        self.abi_calls += 1
        self._maybe_fail()
        return self.abis.get(address.lower())

    async def close(self):
        pass


class FakeFactory:
    def __init__(self, explorer: FakeExplorer):
        self.explorer = explorer

    def get_explorer(self, chain_id: int) -> FakeExplorer:
        return self.explorer

    async def close(self):
        pass


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def explorer() -> FakeExplorer:
    return FakeExplorer()


@pytest.fixture
def cache(tmp_path, explorer, sleep) -> VerificationStatusCache:
    return VerificationStatusCache(FakeFactory(explorer), cache_dir=tmp_path / "cache", sleep=sleep)


def make_context(provider: FakeProvider, cache: Optional[VerificationStatusCache], chain_id: int = 1) -> CheckContext:
    return CheckContext(
        chain=get_chain_config(chain_id),
        provider=provider,
        cache=cache,
        governor_address=GOVERNOR,
        timelock_address=TIMELOCK,
    )


def make_proposal(targets: List[str], values: Optional[List[int]] = None,
                  calldatas: Optional[List[str]] = None) -> ProposalExecution:
    return ProposalExecution.from_dict({
        "id": 42,
        "proposer": "0x9999999999999999999999999999999999999999",
        "targets": targets,
        "values": values or [0] * len(targets),
        "calldatas": calldatas or ["0x"] * len(targets),
        "description": "# Test proposal\nbody",
    })


def make_sim(chain_id: int = 1, to: str = GOVERNOR, calls: Optional[List[CallTrace]] = None,
             **kwargs) -> SimulationResult:
    return SimulationResult(
        chain_id=chain_id,
        status=True,
        call_trace=CallTrace(to=to, input="0xfe0d94c1", calls=calls or []),
        **kwargs,
    )
