"""Per-round contracts and validation of initial and additional downs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .cards import Card
from .melds import MIN_MELD_SIZE, is_escala, is_trio


@dataclass(frozen=True)
class Contract:
    round: int
    trios: int
    trio_size: int
    escalas: int = 0
    escala_size: int = 0
    name: str = ""

    @property
    def group_count(self) -> int:
        return self.trios + self.escalas

    def describe(self) -> str:
        parts = []
        if self.trios:
            parts.append(f"{self.trios} trio(s) of size {self.trio_size}+")
        if self.escalas:
            parts.append(f"{self.escalas} escala(s) of size {self.escala_size}+")
        return " and ".join(parts)


ROUND_CONTRACTS: Dict[int, Contract] = {
    1: Contract(1, trios=1, trio_size=3, name="1 trio of 3+"),
    2: Contract(2, trios=2, trio_size=3, name="2 trios of 3+"),
    3: Contract(3, trios=1, trio_size=4, name="1 trio of 4+"),
    4: Contract(4, trios=2, trio_size=4, name="2 trios of 4+"),
    5: Contract(5, trios=1, trio_size=5, name="1 trio of 5+"),
    6: Contract(6, trios=2, trio_size=5, name="2 trios of 5+"),
    7: Contract(7, trios=1, trio_size=6, name="1 trio of 6+"),
    8: Contract(8, trios=0, trio_size=0, escalas=1, escala_size=7, name="Escala of 7+"),
}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None


def contract_for_round(round_number: int) -> Optional[Contract]:
    return ROUND_CONTRACTS.get(round_number)


def validate_contract(groups: Sequence[Sequence[Card]], round_number: int) -> ValidationResult:
    """Check an initial down matches the round's contract exactly."""
    contract = contract_for_round(round_number)
    if contract is None:
        return ValidationResult(False, f"Unknown round {round_number}; no contract applies.")
    if len(groups) > contract.group_count:
        return ValidationResult(
            False,
            f"Only exactly {contract.describe()} may be laid down in round {round_number}.",
        )

    trios = sum(1 for group in groups if contract.trios and is_trio(group, contract.trio_size))
    escalas = sum(1 for group in groups if contract.escalas and is_escala(group, contract.escala_size))

    missing_trios = contract.trios - trios
    missing_escalas = contract.escalas - escalas
    if missing_trios > 0:
        return ValidationResult(False, f"Missing {missing_trios} trio(s) of size {contract.trio_size}+.")
    if missing_escalas > 0:
        return ValidationResult(
            False, f"Missing {missing_escalas} escala(s) of size {contract.escala_size}+."
        )
    return ValidationResult(True)


def validate_additional_down(groups: Sequence[Sequence[Card]]) -> ValidationResult:
    """After the initial down, each group only has to be a legal trio or escala."""
    if not groups:
        return ValidationResult(False, "At least one group must be laid down.")
    for index, group in enumerate(groups, start=1):
        if len(group) < MIN_MELD_SIZE:
            return ValidationResult(False, f"Group {index} must have at least {MIN_MELD_SIZE} cards.")
        if not is_trio(group) and not is_escala(group):
            return ValidationResult(False, f"Group {index} is neither a valid trio nor a valid escala.")
    return ValidationResult(True)
