import json
from pathlib import Path
from typing import List, NamedTuple

from eth_typing import ABI

from creator_passport.errors import ArtifactMissingError


class ContractArtifact(NamedTuple):
    """Compiled contract: ABI plus creation bytecode."""

    name: str
    abi: ABI
    bytecode: str


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def _candidate_paths(artifacts_dir: Path, contract_name: str) -> List[Path]:
    filename = f"{contract_name}.json"
    candidates = [
        artifacts_dir / "contracts" / f"{contract_name}.sol" / filename,  # hardhat
        artifacts_dir / f"{contract_name}.sol" / filename,  # foundry
    ]
    # dependencies (e.g. @openzeppelin) land in nested directories
    candidates.extend(
        sorted(p for p in artifacts_dir.rglob(filename) if p not in candidates)
    )
    return [p for p in candidates if p.is_file()]


def _get_bytecode(data: dict) -> str:
    bytecode = data.get("bytecode") or ""
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object") or ""  # foundry format
    if bytecode and not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return bytecode


def load_artifact(artifacts_dir: Path, contract_name: str) -> ContractArtifact:
    """Locates and loads the compiled artifact of a contract."""
    artifacts_dir = Path(artifacts_dir)
    if not artifacts_dir.is_dir():
        raise ArtifactMissingError(f"Artifacts directory {artifacts_dir} does not exist.")

    candidates = _candidate_paths(artifacts_dir, contract_name)
    if not candidates:
        raise ArtifactMissingError(
            f"No compiled artifact found for {contract_name} in {artifacts_dir}."
        )

    filepath = candidates[0]
    try:
        data = _load_json(filepath)
    except (OSError, ValueError) as e:
        raise ArtifactMissingError(f"Could not read artifact {filepath}: {e}")

    abi = data.get("abi")
    if not isinstance(abi, list):
        raise ArtifactMissingError(f"Artifact {filepath} has no ABI.")
    bytecode = _get_bytecode(data)
    if bytecode in ("", "0x"):
        raise ArtifactMissingError(
            f"Artifact {filepath} has no bytecode; is {contract_name} abstract or an interface?"
        )
    return ContractArtifact(name=contract_name, abi=abi, bytecode=bytecode)
