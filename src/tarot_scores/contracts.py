"""
Contracts declared by the attack.
Order: Petite < Garde < Garde sans le Chien < Garde contre le Chien.
Multipliers: Petite×1, Garde×2, Garde sans×4, Garde contre×6.
"""
from __future__ import annotations

from enum import IntEnum


class Contract(IntEnum):
    """Contract levels in ascending order."""
    PETITE = 1
    GARDE = 2
    GARDE_SANS = 3    # Garde sans le Chien
    GARDE_CONTRE = 4  # Garde contre le Chien

    @property
    def label(self) -> str:
        """Stored form of the contract ("petite", "garde", ...)."""
        return CONTRACT_LABELS[self]

    @classmethod
    def from_label(cls, label: str) -> "Contract":
        try:
            return _CONTRACTS_BY_LABEL[label]
        except KeyError:
            raise ValueError(f"Unknown contract {label!r}") from None


CONTRACT_NAMES = {
    Contract.PETITE: "Petite",
    Contract.GARDE: "Garde",
    Contract.GARDE_SANS: "Garde sans le Chien",
    Contract.GARDE_CONTRE: "Garde contre le Chien",
}

CONTRACT_LABELS = {
    Contract.PETITE: "petite",
    Contract.GARDE: "garde",
    Contract.GARDE_SANS: "garde sans",
    Contract.GARDE_CONTRE: "garde contre",
}

CONTRACT_MULTIPLIERS = {
    Contract.PETITE: 1,
    Contract.GARDE: 2,
    Contract.GARDE_SANS: 4,
    Contract.GARDE_CONTRE: 6,
}

_CONTRACTS_BY_LABEL = {label: contract for contract, label in CONTRACT_LABELS.items()}


def contract_multiplier(contract: Contract) -> int:
    """Score multiplier for the contract."""
    return CONTRACT_MULTIPLIERS[Contract(contract)]


def coerce_contract(value: Contract | str | int) -> Contract:
    """
    Normalize a contract given as enum, stored label, or level number.

    Anything outside the four known tiers raises ValueError.
    """
    if isinstance(value, Contract):
        return value
    if isinstance(value, str):
        return Contract.from_label(value)
    return Contract(value)
