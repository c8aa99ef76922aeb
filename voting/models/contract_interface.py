from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ContractInterface(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Address that was queried (the proxy, when one was followed)
    address: str
    abi: List[Dict[str, Any]] = Field(default_factory=list)

    # Set when the ABI was taken from a proxy's implementation
    implementation_address: str | None = None

    @property
    def is_proxied(self) -> bool:
        return self.implementation_address is not None
