from __future__ import annotations


class HuntClientError(Exception):
    """A non-2xx answer from the hunt API; `error` is the server's error class name when it sent one."""

    def __init__(self, status_code: int, detail: str, error: str | None = None):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.error = error
