"""Small I/O helpers shared with the native side of the package."""

from __future__ import annotations

import json
import ssl
import urllib.request
from pathlib import Path
from typing import Any, Iterable, Mapping, Tuple, Union

Options = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _insecure_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def fetch_json(url: str, options: Options = (), tls_insecure: bool = False, timeout: float = 60.0) -> Any:
    """Request ``url`` and return the parsed JSON body.

    ``options`` may hold ``method``, ``headers`` and ``body``, given either as
    a mapping or as ``(key, value)`` pairs. With ``tls_insecure`` the server
    certificate is not verified.
    """
    opts = dict(options.items() if isinstance(options, Mapping) else options)

    body = opts.get("body")
    if isinstance(body, str):
        body = body.encode("utf-8")

    request = urllib.request.Request(
        url,
        data=body,
        headers=dict(opts.get("headers") or {}),
        method=opts.get("method"),
    )

    kwargs = {"timeout": timeout}
    if tls_insecure:
        kwargs["context"] = _insecure_context()

    with urllib.request.urlopen(request, **kwargs) as response:
        return json.loads(response.read().decode("utf-8"))


def read_file_to_string(path: Union[str, Path]) -> str:
    return Path(path).read_text(encoding="utf-8")
