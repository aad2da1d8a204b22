class AccountStoreError(Exception):
    """Base error for account store operations"""


class AccountStoreUnavailable(AccountStoreError):
    """The account store could not be reached or returned an unexpected error.

    Callers must treat this as a hard failure: no permission can be assumed.
    """


class AccountAlreadyExists(AccountStoreError):
    """A row with the same unique key already exists"""
