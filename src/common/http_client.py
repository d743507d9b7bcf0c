"""Shared HTTP helpers used by the registry and release-lookup clients.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. Every failure surfaces as RegistryUnavailable:
callers treat it as "no information", never as an empty answer.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from errors import RegistryUnavailable
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def robust_get(
    url: str,
    *,
    context: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and retries, with DEBUG traces.

    Server errors (5xx), timeouts and connection errors are retried up to
    ``Constants.HTTP_RETRY_MAX`` times with a linear backoff.

    Raises:
        RegistryUnavailable: when every attempt failed at the transport level.
    """
    safe_target = safe_url(url)
    effective_timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
    last_exception = None
    last_response: Optional[Tuple[int, Dict[str, str], str]] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * attempt)
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            context=context,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=effective_timeout,
                    headers=headers,
                    **kwargs
                )
            except requests.Timeout:
                last_exception = f"timed out after {effective_timeout} seconds"
                logger.debug("%s request timed out (attempt %d)", context, attempt + 1)
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = f"connection error: {exc}"
                logger.debug("%s connection error (attempt %d): %s", context, attempt + 1, exc)
                continue

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=response.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
        last_response = (response.status_code, dict(response.headers), response.text)
        if response.status_code >= 500:
            last_exception = f"server error {response.status_code}"
            continue
        return last_response

    if last_response is not None:
        return last_response
    raise RegistryUnavailable(
        context,
        f"request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}",
    )


def get_json(
    url: str,
    *,
    context: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    **kwargs: Any
) -> Any:
    """Perform GET request and parse the JSON body.

    Args:
        url: Target URL
        context: Subject of the request for logs and errors (e.g. a package name)
        headers: Optional request headers
        timeout: Per-request timeout in seconds; defaults to Constants.REQUEST_TIMEOUT
        **kwargs: Additional requests.get parameters

    Returns:
        The decoded JSON document.

    Raises:
        RegistryUnavailable: on transport failure, non-2xx status or invalid JSON.
    """
    status_code, _, text = robust_get(url, context=context, headers=headers, timeout=timeout, **kwargs)

    if not 200 <= status_code < 300:
        logger.warning("%s: registry returned HTTP %s", context, status_code)
        raise RegistryUnavailable(context, f"HTTP {status_code}")

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        if is_debug_enabled(logger):
            logger.debug(
                "JSON decode error",
                extra=extra_context(
                    event="parse",
                    component="http_client",
                    action="get_json",
                    outcome="json_decode_error",
                    status_code=status_code,
                    target=safe_url(url)
                )
            )
        raise RegistryUnavailable(context, f"malformed JSON payload: {exc}") from exc

    return parsed
