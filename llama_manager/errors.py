"""Error types raised by the control-API client and the browse flow."""


class ControlApiError(Exception):
    """The manager API answered with a non-2xx status or an unusable body."""

    def __init__(self, method: str, path: str, status_code: int | None, detail: str = ""):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        label = f"status={status_code}" if status_code is not None else "invalid payload"
        message = f"Manager API {method} {path} failed ({label})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedRepositoryId(ValueError):
    """Repository identifier is not of the form ``author/model``."""

    def __init__(self, repo_id: str):
        self.repo_id = repo_id
        super().__init__(f"Repository id '{repo_id}' is not of the form author/model")


class ClientNotStarted(RuntimeError):
    """A request was issued before ``start()`` or after ``stop()``."""
