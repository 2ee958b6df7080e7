"""Tests for placeholder-address warning suppression."""

from checks.base import to_address_link
from checks.placeholder import DEFAULT_SIMULATION_ADDRESS, PlaceholderAddressPolicy

from conftest import ADDR_A

LOOKALIKE = "0x0000000000000000000000000000000000001235"


def warning_for(address: str) -> str:
    return f"{to_address_link(address)} (simulation placeholder): EOA (may have code later)"


class TestPlaceholderAddressPolicy:

    def setup_method(self):
        self.policy = PlaceholderAddressPolicy()

    def test_only_placeholder_warning_is_dropped(self):
        assert self.policy.resolve([], [warning_for(DEFAULT_SIMULATION_ADDRESS)]) == []

    def test_placeholder_warning_is_kept_alongside_real_warning(self):
        real = f"{to_address_link(ADDR_A)}: Contract (with DELEGATECALL)"
        placeholder = warning_for(DEFAULT_SIMULATION_ADDRESS)
        assert self.policy.resolve([real], [placeholder]) == [real, placeholder]

    def test_lookalike_address_is_never_suppressed(self):
        warning = warning_for(LOOKALIKE)
        assert self.policy.is_suppressible(warning) is False
        assert self.policy.resolve([], [warning]) == [warning]

    def test_is_placeholder_requires_exact_address(self):
        assert self.policy.is_placeholder(DEFAULT_SIMULATION_ADDRESS)
        assert not self.policy.is_placeholder(LOOKALIKE)
        assert not self.policy.is_placeholder("0x1234")

    def test_warning_without_linked_address_is_not_suppressible(self):
        assert self.policy.is_suppressible(f"{DEFAULT_SIMULATION_ADDRESS}: EOA (may have code later)") is False

    def test_suffix(self):
        assert self.policy.suffix(DEFAULT_SIMULATION_ADDRESS) == " (simulation placeholder)"
        assert self.policy.suffix(ADDR_A) == ""
