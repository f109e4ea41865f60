"""Exceptions raised by contract-guard."""

from __future__ import annotations


class ContractGuardError(Exception):
    """Base class for all contract-guard errors."""


class RuleError(ContractGuardError, ValueError):
    """A mask rule is empty or targets already-masked text."""


class UnknownDetectorError(ContractGuardError, KeyError):
    """No pattern detector with this id exists in the catalog."""


class UnknownRiskError(ContractGuardError, KeyError):
    """No risk annotation with this id exists in the review."""


class UnknownSessionError(ContractGuardError, KeyError):
    """No review session with this id is open or stored."""
