"""Bounds for token amounts and display precision."""

# Amounts are unsigned 256-bit integers in base units.
MAX_UINT256 = 2**256 - 1

# 10**77 is the largest power of ten below 2**256.
MAX_DECIMALS = 77
