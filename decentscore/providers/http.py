# decentscore/providers/http.py
import requests

from decentscore.errors import ProviderError


def get_json(session: requests.Session, provider: str, url: str, params=None, timeout: float = 20, headers=None):
    """GET and decode JSON; HTTP and transport errors become ``ProviderError``."""
    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.RequestException as e:
        raise ProviderError(provider, str(e)) from e
    except ValueError as e:
        raise ProviderError(provider, f"invalid JSON: {e}") from e


def post_graphql(session: requests.Session, provider: str, url: str, query: str, variables: dict,
                 timeout: float = 20, headers=None) -> dict:
    """POST a GraphQL query and return ``data``; GraphQL errors raise ``ProviderError``."""
    hdrs = {"content-type": "application/json"}
    hdrs.update(headers or {})
    try:
        resp = session.post(url, json={"query": query, "variables": variables}, headers=hdrs, timeout=timeout)
        resp.raise_for_status()
        body = resp.json()
    except requests.RequestException as e:
        raise ProviderError(provider, str(e)) from e
    except ValueError as e:
        raise ProviderError(provider, f"invalid JSON: {e}") from e

    errors = body.get("errors") or []
    if errors:
        raise ProviderError(provider, errors[0].get("message") or "graphql error")
    return body.get("data") or {}
