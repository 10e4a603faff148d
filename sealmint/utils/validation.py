"""
Input Validation - Sanitization of participant-supplied values.

Every value crossing the sale boundary (addresses, commitments, blinding
factors, appraisals, amounts, timestamps) is checked here before any
state is touched.
"""

from typing import Any, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

ADDRESS_SIZE = 20
HASH_SIZE = 32
BLINDING_FACTOR_SIZE = 32

# Appraisals and payments are uint256 values
MIN_AMOUNT = 0
MAX_AMOUNT = 2**256 - 1

MIN_TIMESTAMP = 0
MAX_TIMESTAMP = 2**64 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_bytes(
    data: Any,
    name: str,
    expected_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> Tuple[bool, str]:
    """
    Validate bytes input.

    Args:
        data: Data to validate
        name: Field name for error messages
        expected_length: Exact expected length
        max_length: Maximum allowed length

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (bytes, bytearray)):
        return False, f"{name} must be bytes, got {type(data).__name__}"

    if expected_length is not None and len(data) != expected_length:
        return False, f"{name} must be {expected_length} bytes, got {len(data)}"

    if max_length is not None and len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a participant address."""
    return validate_bytes(address, name, expected_length=ADDRESS_SIZE)


def validate_hash(hash_value: Any, name: str = "hash") -> Tuple[bool, str]:
    """Validate a 32-byte hash value."""
    return validate_bytes(hash_value, name, expected_length=HASH_SIZE)


def validate_blinding_factor(blinding: Any) -> Tuple[bool, str]:
    """Validate a 32-byte blinding factor."""
    return validate_bytes(blinding, "blinding_factor", expected_length=BLINDING_FACTOR_SIZE)


def validate_integer(
    value: Any,
    name: str,
    min_val: int = MIN_AMOUNT,
    max_val: int = MAX_AMOUNT,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Booleans are rejected even though they subclass int.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(amount: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a uint256 value amount."""
    return validate_integer(amount, name, MIN_AMOUNT, MAX_AMOUNT)


def validate_appraisal(appraisal: Any) -> Tuple[bool, str]:
    """Validate a revealed appraisal (zero is a legal bid)."""
    return validate_integer(appraisal, "appraisal", MIN_AMOUNT, MAX_AMOUNT)


def validate_timestamp(timestamp: Any, name: str = "timestamp") -> Tuple[bool, str]:
    """Validate a unix timestamp."""
    return validate_integer(timestamp, name, MIN_TIMESTAMP, MAX_TIMESTAMP)


def validate_all(*checks: Tuple[bool, str]) -> Tuple[bool, str]:
    """
    Combine validation results, returning the first failure.

    Example:
        ok, err = validate_all(
            validate_address(participant),
            validate_hash(commitment, "commitment"),
        )
    """
    for valid, err in checks:
        if not valid:
            return False, err
    return True, ""


def ensure(*checks: Tuple[bool, str]) -> None:
    """Raise InvalidInput for the first failed check."""
    from sealmint.core.errors import InvalidInput

    valid, err = validate_all(*checks)
    if not valid:
        raise InvalidInput(err)
