from pydantic import BaseModel, Field

from tokenledger.core.models.amount import MAX_UINT256


class TransferEvent(BaseModel):
    from_account: str = Field(..., alias="from", description="Debited account")
    to: str = Field(..., description="Credited account")
    value: int = Field(..., ge=0, le=MAX_UINT256, description="Amount moved in base units")

    model_config = {"populate_by_name": True, "frozen": True}

    def involves(self, account: str) -> bool:
        return account in (self.from_account, self.to)

    def to_dict(self) -> dict:
        return {"event": "Transfer", "from": self.from_account, "to": self.to, "value": self.value}


class ApprovalEvent(BaseModel):
    owner: str = Field(..., description="Account whose balance may be spent")
    spender: str = Field(..., description="Account allowed to spend")
    value: int = Field(..., ge=0, le=MAX_UINT256, description="New allowance in base units")

    model_config = {"frozen": True}

    def involves(self, account: str) -> bool:
        return account in (self.owner, self.spender)

    def to_dict(self) -> dict:
        return {"event": "Approval", "owner": self.owner, "spender": self.spender, "value": self.value}
