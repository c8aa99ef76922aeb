from typing import Any, Dict, Iterable, List, Optional

from eth_utils import function_signature_to_4byte_selector

AbiEntry = Dict[str, Any]


def expand_abi_type(param: AbiEntry) -> str:
    """
    Returns the canonical type of an ABI parameter, expanding tuples to their
    component types, e.g. tuple[] with (address,uint256) -> (address,uint256)[].
    """
    abi_type = param["type"]
    if not abi_type.startswith("tuple"):
        return abi_type

    array_suffix = abi_type[len("tuple"):]
    components = ",".join(expand_abi_type(c) for c in param.get("components", []))
    return f"({components}){array_suffix}"


def input_types(entry: AbiEntry) -> List[str]:
    return [expand_abi_type(p) for p in entry.get("inputs", [])]


def output_types(entry: AbiEntry) -> List[str]:
    return [expand_abi_type(p) for p in entry.get("outputs", [])]


def function_signature(entry: AbiEntry) -> str:
    return f"{entry['name']}({','.join(input_types(entry))})"


def function_selector(entry: AbiEntry) -> bytes:
    return function_signature_to_4byte_selector(function_signature(entry))


def iter_functions(abi: Iterable[AbiEntry]) -> Iterable[AbiEntry]:
    # Entries without "type" are functions in the Solidity ABI JSON format
    for entry in abi:
        if entry.get("type", "function") == "function" and "name" in entry:
            yield entry


def find_function_by_selector(abi: Iterable[AbiEntry], selector: bytes) -> Optional[AbiEntry]:
    if len(selector) != 4:
        return None
    for entry in iter_functions(abi):
        if function_selector(entry) == selector:
            return entry
    return None


def find_function_by_name(abi: Iterable[AbiEntry], name: str) -> Optional[AbiEntry]:
    for entry in iter_functions(abi):
        if entry["name"] == name:
            return entry
    return None
