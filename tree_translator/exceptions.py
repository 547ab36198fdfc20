class UserInputError(Exception):
    """Invalid submission; reported to the caller before any job exists."""


class JobNotFoundError(UserInputError, LookupError):
    """No job with the given id exists."""


class ArtifactNotFoundError(UserInputError, LookupError):
    """The requested output file or archive does not exist."""


def describe_error(error: BaseException) -> str:
    """Client-facing message for ``error``.

    ``OSError`` text embeds absolute filesystem paths, so only its reason is kept.
    """
    if isinstance(error, OSError):
        return error.strerror or type(error).__name__
    return str(error) or type(error).__name__
