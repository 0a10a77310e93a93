"""Exceptions raised by the design services.

Input problems derive from ``DesignInputError`` (also a ``ValueError``) and
never yield a partial result. Conditions a design can recover from are not
raised at all; they travel with the result as ``DesignWarning`` entries.
"""


class DesignError(Exception):
    """Base class for all design failures."""


class DesignInputError(DesignError, ValueError):
    """Invalid user input: sequences, enzyme names, indices or settings."""


class SequenceInputError(DesignInputError):
    """Empty, unparseable or oversized sequence input."""


class UnknownEnzymeError(DesignInputError):
    """Enzyme name not present in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Unknown enzyme: {name}")
        self.name = name


class EnzymeSelectionError(DesignError):
    """None of the selected enzymes cuts the vector."""
