"""
Error kinds and exception classes for the account store.

Every failure an account operation can report has exactly one ErrorKind.
Service code raises the matching AccountError subclass; the public Account
methods convert it into an AccountResult (see gameaccount.result), so callers
branch on `result.kind` instead of catching exceptions.

Exception hierarchy:
    AccountError (base)
    ├── DatabaseError            - storage call failed
    ├── InvalidEmailError        - empty/oversized email
    ├── InvalidPasswordError     - empty/oversized password
    ├── InvalidAccountTypeError  - not an AccountType
    ├── InvalidIdError           - id missing, zero, or no such account
    ├── InvalidLastDayError      - bad premium value
    ├── LoadingPlayersError      - roster query failed
    ├── NotInitializedError      - collaborator or load key missing
    ├── NullReferenceError       - None passed where a collaborator is required
    ├── NotEnoughCoinsError      - remove would go below zero
    ├── CoinOverflowError        - add would exceed COINS_MAX
    ├── InvalidCoinArgumentError - bad transaction type, description or page bound
    └── PlayerNotFoundError      - character not on this account
"""

import enum


class ErrorKind(str, enum.Enum):
    """
    Discriminator for account operation failures.

    Inherits from str so the kind serializes naturally to logs and JSON.
    """
    DB = "db"
    INVALID_ACCOUNT_EMAIL = "invalid_account_email"
    INVALID_ACC_PASSWORD = "invalid_acc_password"
    INVALID_ACC_TYPE = "invalid_acc_type"
    INVALID_ID = "invalid_id"
    INVALID_LAST_DAY = "invalid_last_day"
    LOADING_ACCOUNT_PLAYERS = "loading_account_players"
    NOT_INITIALIZED = "not_initialized"
    NULLPTR = "nullptr"
    VALUE_NOT_ENOUGH_COINS = "value_not_enough_coins"
    VALUE_OVERFLOW = "value_overflow"
    PLAYER_NOT_FOUND = "player_not_found"


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class AccountError(Exception):
    """Base exception for all account store errors."""

    kind: ErrorKind = ErrorKind.DB

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

class DatabaseError(AccountError):
    """Raised when the underlying storage call fails (I/O, constraint, bad result)."""

    kind = ErrorKind.DB

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(detail)


class NotInitializedError(AccountError):
    """Raised when a collaborator or a load key was never supplied."""

    kind = ErrorKind.NOT_INITIALIZED

    def __init__(self, detail: str = "Account is not initialized"):
        super().__init__(detail)


class NullReferenceError(AccountError):
    kind = ErrorKind.NULLPTR

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"{what} must not be None")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class InvalidEmailError(AccountError):
    kind = ErrorKind.INVALID_ACCOUNT_EMAIL

    def __init__(self, detail: str = "Invalid account email"):
        super().__init__(detail)


class InvalidPasswordError(AccountError):
    kind = ErrorKind.INVALID_ACC_PASSWORD

    def __init__(self, detail: str = "Invalid account password"):
        super().__init__(detail)


class InvalidAccountTypeError(AccountError):
    kind = ErrorKind.INVALID_ACC_TYPE

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid account type: {value!r}")


class InvalidIdError(AccountError):
    """Raised when an account id is missing, not positive, or does not resolve to a row."""

    kind = ErrorKind.INVALID_ID

    def __init__(self, detail: str = "Invalid account id"):
        super().__init__(detail)


class InvalidLastDayError(AccountError):
    kind = ErrorKind.INVALID_LAST_DAY

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid premium value: {value!r}")


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

class LoadingPlayersError(AccountError):
    kind = ErrorKind.LOADING_ACCOUNT_PLAYERS

    def __init__(self, account_id: int):
        self.account_id = account_id
        super().__init__(f"Failed to load players of account {account_id}")


class PlayerNotFoundError(AccountError):
    kind = ErrorKind.PLAYER_NOT_FOUND

    def __init__(self, account_id: int, name: str):
        self.account_id = account_id
        self.name = name
        super().__init__(f"Player {name!r} not found on account {account_id}")


# ---------------------------------------------------------------------------
# Coins
# ---------------------------------------------------------------------------

class NotEnoughCoinsError(AccountError):
    """
    Raised when a removal would take the balance below zero.

    Attributes:
        account_id: The account that lacks coins.
        requested: The amount the caller tried to remove.
        available: The balance at the time of the attempt.
    """

    kind = ErrorKind.VALUE_NOT_ENOUGH_COINS

    def __init__(self, account_id: int, requested: int, available: int):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough coins: requested {requested}, available {available}"
        )


class CoinOverflowError(AccountError):
    """Raised when an amount is out of range or an addition would exceed the limit."""

    kind = ErrorKind.VALUE_OVERFLOW

    def __init__(self, account_id: int, requested: int, limit: int, balance: int | None = None):
        self.account_id = account_id
        self.requested = requested
        self.limit = limit
        self.balance = balance
        if balance is None:
            detail = f"Coin amount {requested} outside 0..{limit}"
        else:
            detail = f"Adding {requested} coins to {balance} exceeds {limit}"
        super().__init__(detail)


class InvalidCoinArgumentError(AccountError):
    """Raised for an unusable ledger argument other than the amount (type, description, paging)."""

    kind = ErrorKind.VALUE_OVERFLOW

    def __init__(self, what: str, value: object):
        self.what = what
        self.value = value
        super().__init__(f"Invalid {what}: {value!r}")
