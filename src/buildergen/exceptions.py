"""Exception types raised by buildergen."""

from __future__ import annotations

from pathlib import Path


class BuilderGenError(Exception):
    """Base class for buildergen failures."""


class InputContractError(BuilderGenError):
    """A descriptor handed to the synthesizer breaks its input contract.

    The failure is scoped to one target type; synthesis of other targets is
    unaffected.
    """

    def __init__(self, target: str, message: str):
        super().__init__(f"{target}: {message}")
        self.target = target
        self.reason = message


class BuilderNameCollision(BuilderGenError):
    """A builder class with the same name was already declared."""

    def __init__(self, name: str):
        super().__init__(f"Builder class {name} is already declared")
        self.name = name


class DiscoveryError(BuilderGenError):
    """A source file could not be read or parsed."""

    def __init__(self, path: Path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.reason = message
