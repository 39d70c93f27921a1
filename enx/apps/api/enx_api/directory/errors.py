"""Directory error taxonomy.

Every error the admin API reports on purpose is a DirectoryError. The app's
exception handler turns it into a problem-details JSON body using the
class-level status/title/slug plus the instance's ``extensions()``.
"""

from typing import Any, Optional


class DirectoryError(Exception):
    """Base class for reported directory failures."""

    status_code: int = 500
    title: str = "Internal Server Error"
    slug: str = "internal-error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def extensions(self) -> dict[str, Any]:
        """Extra problem-details members for this error."""
        return {}


class Unauthenticated(DirectoryError):
    """Missing, malformed, invalid or expired bearer credential."""

    status_code = 401
    title = "Unauthorized"
    slug = "unauthenticated"


class Forbidden(DirectoryError):
    """Authenticated caller without admin privileges."""

    status_code = 403
    title = "Forbidden"
    slug = "forbidden"


class NotFound(DirectoryError):
    """No identity exists for the requested id."""

    status_code = 404
    title = "Not Found"
    slug = "not-found"


class InvalidArgument(DirectoryError):
    """Malformed request body or query."""

    status_code = 400
    title = "Bad Request"
    slug = "invalid-argument"


class UpstreamFailure(DirectoryError):
    """A call to the identity and/or profile store failed."""

    status_code = 500
    title = "Upstream Store Failure"
    slug = "upstream-failure"

    def __init__(self, detail: str, stores: list[str], cause: Optional[BaseException] = None):
        super().__init__(detail)
        self.stores = list(stores)
        self.cause = cause

    def extensions(self) -> dict[str, Any]:
        return {"stores": self.stores}


class PartialFailure(DirectoryError):
    """One of the two writes of an update succeeded and the other did not.

    Nothing is rolled back; operators reconcile using failed_store and
    succeeded_store.
    """

    status_code = 500
    title = "Partial Update Failure"
    slug = "partial-failure"

    def __init__(
        self,
        detail: str,
        failed_store: str,
        succeeded_store: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(detail)
        self.failed_store = failed_store
        self.succeeded_store = succeeded_store
        self.cause = cause

    def extensions(self) -> dict[str, Any]:
        return {
            "failed_store": self.failed_store,
            "succeeded_store": self.succeeded_store,
        }
