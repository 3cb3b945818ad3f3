from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from buildergen.synthesis.model import CapabilityContract, FailureType


@dataclass(frozen=True)
class FailureClassifier:
    """Splits declared failure types into unchecked and must-be-declared.

    A failure is unchecked when its own name or one of its known ancestors
    matches an unchecked root. Roots match either the full dotted name or its
    last segment, so ``RuntimeError`` also covers ``builtins.RuntimeError``.
    Failures with an unknown lineage are treated as must-be-declared.
    """

    unchecked_roots: Tuple[str, ...] = ("RuntimeError",)

    def is_unchecked(self, failure: FailureType) -> bool:
        roots = set(self.unchecked_roots)
        for name in (failure.name, *failure.lineage):
            if name in roots or name.rpartition(".")[2] in roots:
                return True
        return False

    def must_be_declared(self, failure: FailureType) -> bool:
        return not self.is_unchecked(failure)

    def contract_for(self, failures: Iterable[FailureType]) -> CapabilityContract:
        if any(self.must_be_declared(failure) for failure in failures):
            return CapabilityContract.DECLARES_FAILURES
        return CapabilityContract.NO_DECLARED_FAILURES
