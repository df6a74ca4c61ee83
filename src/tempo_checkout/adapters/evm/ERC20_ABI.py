"""
TIP-20 / ERC20 + Stablecoin Exchange Smart Contract ABI Module

This module provides minimal ABI definitions for the contract calls the
checkout needs: balance and allowance reads, approve and transfer, and the
stablecoin exchange quote/swap pair.

Usage:
    from .ERC20_ABI import get_token_abi, get_exchange_abi

    token = web3.eth.contract(address=token_address, abi=get_token_abi())
    balance = await token.functions.balanceOf(account).call()

    exchange = web3.eth.contract(address=exchange_address, abi=get_exchange_abi())
    amount_in = await exchange.functions.quoteSwapExactAmountOut(a, b, out).call()
"""

from typing import Dict, Any, List


def get_balance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for querying a token balance.

    Returns:
        List[Dict[str, Any]]: ABI for balanceOf function
    """
    return [
        {
            "name": "balanceOf",
            "type": "function",
            "stateMutability": "view",
            "inputs": [{"name": "account", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_allowance_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `allowance(owner, spender)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `allowance` function.
    """
    return [
        {
            "name": "allowance",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
            ],
            "outputs": [{"name": "", "type": "uint256"}],
        }
    ]


def get_approve_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `approve(spender, amount)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `approve` function.
    """
    return [
        {
            "name": "approve",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "spender", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_transfer_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for ERC20 `transfer(to, amount)`.

    Returns:
        List[Dict[str, Any]]: ABI for ERC20 `transfer` function.
    """
    return [
        {
            "name": "transfer",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
        }
    ]


def get_token_abi() -> List[Dict[str, Any]]:
    """Combined token ABI: balanceOf, allowance, approve, transfer."""
    return get_balance_abi() + get_allowance_abi() + get_approve_abi() + get_transfer_abi()


def get_exchange_abi() -> List[Dict[str, Any]]:
    """
    Get ABI for the stablecoin exchange exact-output quote and swap.

    ``quoteSwapExactAmountOut`` returns the amount of ``tokenIn`` needed to
    receive exactly ``amountOut`` of ``tokenOut``. ``swapExactAmountOut``
    executes that trade and reverts if more than ``maxAmountIn`` would be spent.

    Returns:
        List[Dict[str, Any]]: ABI containing both exchange functions.
    """
    return [
        {
            "name": "quoteSwapExactAmountOut",
            "type": "function",
            "stateMutability": "view",
            "inputs": [
                {"name": "tokenIn", "type": "address"},
                {"name": "tokenOut", "type": "address"},
                {"name": "amountOut", "type": "uint128"},
            ],
            "outputs": [{"name": "amountIn", "type": "uint128"}],
        },
        {
            "name": "swapExactAmountOut",
            "type": "function",
            "stateMutability": "nonpayable",
            "inputs": [
                {"name": "tokenIn", "type": "address"},
                {"name": "tokenOut", "type": "address"},
                {"name": "amountOut", "type": "uint128"},
                {"name": "maxAmountIn", "type": "uint128"},
            ],
            "outputs": [{"name": "amountIn", "type": "uint128"}],
        },
    ]
