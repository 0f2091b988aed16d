"""GitHub lookups for pinning source files to commits."""
from __future__ import annotations

import logging
import os
import urllib.parse
from typing import Dict

import requests

from constants import Constants
from common.http_client import get_json
from versioning.errors import FeedError

logger = logging.getLogger(__name__)


def _headers() -> Dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    token = os.environ.get(Constants.ENV_GITHUB_TOKEN)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def resolve_commit(owner: str, project: str, ref: str) -> str:
    """Return the commit sha a branch, tag or sha prefix points to.

    Raises:
        FeedError: If GitHub cannot be reached or does not know the ref.
    """
    quoted_ref = urllib.parse.quote(ref, safe="")
    url = f"{Constants.GITHUB_API_BASE}/repos/{owner}/{project}/commits/{quoted_ref}"
    source = f"github:{owner}/{project}"
    try:
        status, data = get_json(url, context="github", headers=_headers())
    except requests.RequestException as exc:
        raise FeedError(source, f"request failed: {exc}") from exc
    if status != 200 or not isinstance(data, dict) or not data.get("sha"):
        raise FeedError(source, f"cannot resolve '{ref}' (HTTP {status})")
    logger.debug("Resolved %s/%s@%s to %s", owner, project, ref, data["sha"])
    return data["sha"]
