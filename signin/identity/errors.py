class SignInError(Exception):
    """A sign in attempt was abandoned. Nothing was written to storage."""


class MissingAuthResponse(SignInError):
    pass


class InvalidAuthResponse(SignInError):
    pass


class NameLookupUnavailable(SignInError):
    """The name lookup endpoint could not be reached during verification."""
