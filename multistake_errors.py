"""
MultiStake Errors - every way a ledger operation can be rejected.

Each error aborts the whole operation; nothing is partially applied.
Callers switch on the class (or on the stable ``code`` string) to decide
whether to re-read pool state and retry or to give up.

Taxonomy:
- Authorization: Unauthorized
- Capacity:      SlotExhausted
- Lookup:        UnknownClass, DuplicateClass
- Validation:    InvalidFee, InvalidWeight, InvalidAmount, InvalidIdentity,
                 NonZeroSupplyOnRemoval
- Arithmetic:    Overflow, DivideByZero
- Liquidity:     InsufficientFunds, InsufficientShares, InsufficientReserves
"""


class MultistakeError(Exception):
    """Base class for all ledger errors."""
    code = "MultistakeError"


# =============================================================================
# CATEGORIES
# =============================================================================

class AuthorizationError(MultistakeError):
    """Caller lacks the admin capability."""


class CapacityError(MultistakeError):
    """No room left in the pool record."""


class ClassLookupError(MultistakeError):
    """Class identity not found, or repeated in a batch."""


class ValidationError(MultistakeError):
    """Caller-supplied parameter out of the allowed range."""


class MathError(MultistakeError):
    """Checked arithmetic would wrap or divide by zero."""


class LiquidityError(MultistakeError):
    """Not enough balance on one side of a transfer."""


# =============================================================================
# CONCRETE ERRORS
# =============================================================================

class Unauthorized(AuthorizationError):
    code = "Unauthorized"


class SlotExhausted(CapacityError):
    code = "SlotExhausted"


class UnknownClass(ClassLookupError):
    code = "UnknownClass"


class DuplicateClass(ClassLookupError):
    code = "DuplicateClass"


class InvalidFee(ValidationError):
    code = "InvalidFee"


class InvalidWeight(ValidationError):
    code = "InvalidWeight"


class InvalidAmount(ValidationError):
    code = "InvalidAmount"


class InvalidIdentity(ValidationError):
    code = "InvalidIdentity"


class NonZeroSupplyOnRemoval(ValidationError):
    code = "NonZeroSupplyOnRemoval"


class Overflow(MathError):
    code = "Overflow"


class DivideByZero(Overflow):
    code = "DivideByZero"


class InsufficientFunds(LiquidityError):
    code = "InsufficientFunds"


class InsufficientShares(LiquidityError):
    code = "InsufficientShares"


class InsufficientReserves(LiquidityError):
    code = "InsufficientReserves"


class InvariantViolation(MultistakeError):
    """Pool record failed its post-operation consistency check."""
    code = "InvariantViolation"
