"""
Genesis model describing the construction-time configuration of a token ledger.
"""
from pydantic import BaseModel, Field

from tokenledger.core.models.amount import MAX_DECIMALS, MAX_UINT256


class TokenGenesis(BaseModel):
    """Defines the fixed metadata and initial owner of a token ledger."""
    name: str = Field(..., min_length=1, description="Human readable token name")
    symbol: str = Field(..., min_length=1, description="Ticker symbol")
    initial_supply: int = Field(..., ge=0, le=MAX_UINT256, description="Total supply in base units")
    owner: str = Field(..., min_length=1, description="Account credited with the whole supply")
    decimals: int = Field(18, ge=0, le=MAX_DECIMALS, description="Display decimals")

    model_config = {"strict": True}

    def to_dict(self) -> dict:
        """Convert the genesis to a dictionary."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            # Kept as a string so 256-bit supplies survive JSON consumers
            "initial_supply": str(self.initial_supply),
            "owner": self.owner,
            "decimals": self.decimals,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenGenesis":
        """Create a TokenGenesis from a dictionary."""
        return cls(
            name=data["name"],
            symbol=data["symbol"],
            initial_supply=int(data["initial_supply"]),
            owner=data["owner"],
            decimals=int(data.get("decimals", 18)),
        )
