#!/usr/bin/env python3
"""
Value Required Check - 执行提案的账户是否需要随交易发送 ETH
"""

from web3 import Web3

from .base import CheckResult, ProposalCheck


def format_ether(wei: int) -> str:
    """wei -> ETH 字符串（去掉多余的小数位）"""
    ether = Web3.from_wei(wei, "ether")
    text = format(ether, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class CheckValueRequired(ProposalCheck):
    id = "check_value_required"
    name = "Reports on whether the caller needs to send ETH with the call"

    async def check(self, proposal, sim, ctx, destinations=None) -> CheckResult:
        total_value = sum(proposal.values)
        tx_value = sim.value

        if tx_value == 0:
            return CheckResult(info=["No ETH is required to be sent by the account that executes this proposal."])

        # 治理提案中 ETH 的流向：caller -> governor -> timelock -> target
        msg1 = "The account that executes this proposal will need to send ETH along with the transaction."
        msg2 = f"The calls made by this proposal require a total of {format_ether(total_value)} ETH."
        msg3 = (
            "Due to the flow of ETH in governance proposals (caller -> governor -> timelock -> target), "
            f"the full amount of {format_ether(tx_value)} ETH must be sent with the transaction."
        )
        return CheckResult(warnings=[f"{msg1}\n\n{msg2} {msg3}"])
