import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional

import click
from eth_typing import ABI, ChecksumAddress
from eth_utils import to_checksum_address

from creator_passport.artifacts import _load_json
from creator_passport.client import TransactionReceipt

ChainId = int
ContractName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deployed contract in the registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str


def registry_entry(
    chain_id: ChainId,
    name: ContractName,
    address: str,
    abi: ABI,
    receipt: TransactionReceipt,
    deployer: str,
) -> RegistryEntry:
    return RegistryEntry(
        chain_id=chain_id,
        name=name,
        address=to_checksum_address(address),
        abi=abi,
        tx_hash=receipt.tx_hash,
        block_number=receipt.block_number or 0,
        deployer=deployer,
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                abi=artifacts["abi"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: Iterable[RegistryEntry], filepath: Path) -> Path:
    """
    Writes registry entries to a file, merging them into any existing registry.
    Entries with the same chain id and name replace the existing ones (e.g. after an upgrade).
    """
    entries = list(entries)
    if not entries:
        click.echo("No registry entries provided.")
        return filepath

    merged: Dict[ChainId, Dict[ContractName, RegistryEntry]] = defaultdict(dict)
    if filepath.exists():
        click.echo(f"Updating existing registry at {filepath}.")
        for entry in read_registry(filepath):
            merged[entry.chain_id][entry.name] = entry
    else:
        click.echo(f"Creating new registry at {filepath}.")
    for entry in entries:
        merged[entry.chain_id][entry.name] = entry

    # Sort registry entries to enforce common order
    data = dict()
    for chain_id in sorted(merged):
        data[str(chain_id)] = {}
        for name in sorted(merged[chain_id]):
            entry = merged[chain_id][name]
            entry_abi = sorted(entry.abi, key=lambda d: (d["type"], d.get("name", "")))
            data[str(chain_id)][name] = {
                "address": entry.address,
                "abi": entry_abi,
                "tx_hash": entry.tx_hash,
                "block_number": int(entry.block_number),
                "deployer": entry.deployer,
            }

    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
    click.echo(f"(i) Registry written to {filepath}!")
    return filepath


def contract_address_from_registry(
    filepath: Path, chain_id: ChainId, names: Iterable[ContractName]
) -> Optional[ChecksumAddress]:
    """Returns the address of the first of `names` registered for chain_id, if any."""
    if not filepath.exists():
        return None
    entries = {e.name: e for e in read_registry(filepath) if e.chain_id == chain_id}
    for name in names:
        if name in entries:
            return to_checksum_address(entries[name].address)
    return None
