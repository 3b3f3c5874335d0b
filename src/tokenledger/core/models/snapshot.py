from pydantic import BaseModel, Field
from typing import Dict

from tokenledger.core.models.genesis import TokenGenesis


class LedgerSnapshot(BaseModel):
    """Point-in-time copy of a ledger's metadata, balances and allowances."""
    genesis: TokenGenesis = Field(..., description="Metadata the ledger was created with")
    balances: Dict[str, int] = Field(default_factory=dict, description="Non-zero balances")
    allowances: Dict[str, Dict[str, int]] = Field(
        default_factory=dict, description="owner -> spender -> remaining allowance"
    )
    version: int = Field(0, ge=0, description="Stored version the state was loaded from, 0 if never stored")

    def circulating(self) -> int:
        return sum(self.balances.values())

    def is_conserved(self) -> bool:
        return self.circulating() == self.genesis.initial_supply
