from __future__ import annotations

import os
from typing import Any
from urllib.parse import quote

from .base import ProviderError, require_api_key, response_json, send_request

_PROVIDER = "openfda"


def search_drug_labels(query: str, *, limit: int = 20) -> list[dict[str, Any]]:
    """Search drug labels by brand or generic name prefix.

    openFDA answers an empty search with a 404 ``NOT_FOUND`` error, which is
    reported here as no results.
    """
    api_key = require_api_key(_PROVIDER, "FDA_API_KEY")
    base_url = os.getenv("FDA_API_BASE_URL", "https://api.fda.gov").rstrip("/")
    term = quote(query.strip(), safe="")
    search = f"(openfda.brand_name:{term}*)+OR+(openfda.generic_name:{term}*)"
    # openFDA expects the literal search syntax, so the query string is built by hand.
    url = f"{base_url}/drug/label.json?api_key={quote(api_key, safe='')}&search={search}&limit={limit}"
    try:
        response = send_request(_PROVIDER, "GET", url)
    except ProviderError as exc:
        if exc.status_code == 404:
            return []
        raise
    payload = response_json(_PROVIDER, response)
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        return []
    return [item for item in results if isinstance(item, dict)]
