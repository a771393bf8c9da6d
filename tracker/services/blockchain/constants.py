"""
Blockchain Constants.

Contains the ERC20 ABI subset used by the points indexer.
"""

from decimal import Decimal, localcontext

# Minimal ERC20 ABI: Transfer event and balanceOf
ERC20_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

# uint256 has at most 78 decimal digits
_SCALE_PRECISION = 100


def scale_amount(raw: int, decimals: int) -> Decimal:
    """
    Convert a raw uint256 amount to token units.

    Args:
        raw: On-chain integer amount
        decimals: Token decimals (0 keeps raw units)

    Returns:
        Exact decimal amount
    """
    with localcontext() as ctx:
        ctx.prec = _SCALE_PRECISION
        return Decimal(raw).scaleb(-decimals)
