from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, model_validator


class AccountType(str, Enum):
    EOA = "EOA"                         # No bytecode at the address
    CONTRACT = "Contract"
    UNKNOWN = "Unknown"                 # Bytecode lookup failed


class VerificationStatus(str, Enum):
    VERIFIED = "Verified"
    NOT_VERIFIED = "Not verified"
    UNKNOWN = "Unknown"                 # Rate limited or lookup error


class RawCall(BaseModel):
    """One segment of an execution script: target plus calldata, in script order."""

    model_config = ConfigDict(frozen=True)

    target_address: str
    calldata: bytes

    @property
    def selector(self) -> bytes:
        return self.calldata[:4]


class AddressInfo(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    address: str
    type: AccountType
    status: VerificationStatus | None = None

    @model_validator(mode="after")
    def _status_only_for_contracts(self) -> "AddressInfo":
        if self.status is not None and self.type != AccountType.CONTRACT:
            raise ValueError(f"Verification status is only defined for contracts, got type {self.type}")
        return self


class DecodedCall(BaseModel):
    """
    A script call after enrichment.

    When the target's interface could not be resolved, method_name, inputs and
    outputs stay None and decoded_args carries the raw calldata as a hex string.
    Otherwise decoded_args has one value per declared input, with address-typed
    values replaced by their AddressInfo.
    """

    model_config = ConfigDict(frozen=True)

    address_info: AddressInfo
    method_name: str | None = None
    inputs: List[Dict[str, Any]] | None = None
    decoded_args: List[Any] | str | None = None
    outputs: List[Dict[str, Any]] | None = None

    @property
    def is_decoded(self) -> bool:
        return self.method_name is not None
