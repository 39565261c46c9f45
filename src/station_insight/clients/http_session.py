"""requests.Session helpers: default headers, a fixed timeout and an optional retry adapter."""
from __future__ import annotations

from typing import Callable, Iterable, Mapping, ParamSpec, TypeVar

import requests
from requests.adapters import HTTPAdapter, Retry

P = ParamSpec("P")
R = TypeVar("R")

JSON_HEADERS = {"Accept": "application/json"}


def configure_session(
    session: requests.Session,
    *,
    headers: Mapping[str, str] | None,
    timeout_seconds: float,
    retries: int = 0,
    retry_backoff_seconds: float = 0.0,
    allowed_methods: Iterable[str] = ("GET",),
    status_forcelist: Iterable[int] = (429, 500, 502, 503, 504),
) -> requests.Session:
    """
    Apply headers and a default per-request timeout to a requests session.

    A retry adapter is only mounted when ``retries`` is positive; with the
    default of zero every request is a single attempt.
    """
    session.headers.update(JSON_HEADERS)
    if headers:
        session.headers.update(headers)

    if retries > 0:
        retry = Retry(
            total=retries,
            read=retries,
            connect=retries,
            backoff_factor=retry_backoff_seconds,
            status_forcelist=frozenset(status_forcelist),
            allowed_methods=frozenset(allowed_methods),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

    session.request = _with_timeout(session.request, timeout_seconds)  # type: ignore[assignment]
    return session


def _with_timeout(fn: Callable[P, R], default_timeout: float) -> Callable[P, R]:
    """Wrap a requests method so ``timeout`` defaults to ``default_timeout``."""
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        kwargs.setdefault("timeout", default_timeout)
        return fn(*args, **kwargs)

    return wrapper
