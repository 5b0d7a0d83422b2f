"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Deadline / catalog data
  2xxx: Bidding
  9xxx: External API / system

http_status carries the upstream status when the error came from the API,
or the status a server would have answered with for local errors.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Deadline / catalog data ---

class MalformedDeadlineError(AppError):
    def __init__(self, raw: object) -> None:
        super().__init__(1001, f"Malformed deadline: {raw!r}", 422)


class UnknownCountdownError(AppError):
    def __init__(self, countdown_id: str) -> None:
        super().__init__(1002, f"Countdown not tracked: {countdown_id}", 404)


# --- 2xxx: Bidding ---

class ExpiryUnknownError(AppError):
    def __init__(self, product_key: str) -> None:
        super().__init__(
            2001,
            f"Cannot decide expiry for {product_key}: no deadline tracked or given",
            422,
        )


# --- 9xxx: External API / system ---

class ApiTimeoutError(AppError):
    def __init__(self, endpoint: str) -> None:
        super().__init__(9001, f"API request timed out: {endpoint}", 504)


class ApiStatusError(AppError):
    def __init__(self, endpoint: str, status: int, detail: str = "") -> None:
        self.detail = detail
        message = f"API {status} on {endpoint}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(9002, message, status)


class MalformedResponseError(AppError):
    def __init__(self, endpoint: str, detail: str) -> None:
        super().__init__(9003, f"Malformed response from {endpoint}: {detail}", 502)


class ApiUnavailableError(AppError):
    def __init__(self, endpoint: str, detail: str) -> None:
        super().__init__(9004, f"API unreachable at {endpoint}: {detail}", 503)
