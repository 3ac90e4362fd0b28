"""Error hierarchy for the docstore data-access layer.

Driver errors (``pymongo.errors.*``) are never wrapped: connection and store
operation failures reach the caller unchanged. Only problems detected by this
package itself are raised as ``DocstoreError`` subclasses.
"""


class DocstoreError(Exception):
    """Base exception for all errors raised by docstore itself."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(DocstoreError):
    """Raised when configuration is missing or invalid.

    Examples:
        - Blank database or collection name for a CRUD facade
        - DBOPTS that is not a JSON object
        - Non-numeric port
    """

    pass


class InvalidTargetError(DocstoreError, ValueError):
    """Raised when a CRUD argument cannot be dispatched.

    Examples:
        - A target that is neither an identifier nor a mapping
        - A full-document replace on a document without ``_id``
    """

    pass
