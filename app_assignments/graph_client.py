import time
import logging
from typing import List, Dict, Any, Optional

import msal
import requests

from . import config
from .errors import AuthenticationError, FetchFailed, GraphAPIError

THROTTLE_STATUSES = (429, 503)


class GraphClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = config.GRAPH_BASE,
        timeout: int = config.GRAPH_TIMEOUT,
        max_retries: int = config.GRAPH_MAX_RETRIES,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.token = token or self._get_token()

    def _get_token(self) -> str:
        if not (config.TENANT_ID and config.CLIENT_ID and config.CLIENT_SECRET):
            raise AuthenticationError(
                "AZ_TENANT_ID, AZ_CLIENT_ID and AZ_CLIENT_SECRET must be set to acquire a token"
            )
        try:
            app = msal.ConfidentialClientApplication(
                config.CLIENT_ID,
                authority=f"https://login.microsoftonline.com/{config.TENANT_ID}",
                client_credential=config.CLIENT_SECRET,
            )
            result = app.acquire_token_for_client(scopes=config.GRAPH_SCOPES)
        except requests.RequestException as e:
            raise AuthenticationError(f"Token request to login.microsoftonline.com failed: {e}") from e
        if "access_token" not in result:
            raise AuthenticationError(
                f"Failed to acquire token: {result.get('error_description', result)}"
            )
        return result["access_token"]

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"}
        attempt = 0
        while True:
            resp = requests.get(url, headers=headers, params=params, timeout=self.timeout)
            if resp.status_code in THROTTLE_STATUSES and attempt < self.max_retries:
                attempt += 1
                delay = _retry_after(resp)
                logging.warning(
                    "Graph throttled %s (%s), retry %d/%d in %ss",
                    url,
                    resp.status_code,
                    attempt,
                    self.max_retries,
                    delay,
                )
                time.sleep(delay)
                continue
            if resp.status_code >= 400:
                if resp.status_code != 404:
                    logging.error("Graph API error %s: %s", resp.status_code, resp.text)
                raise GraphAPIError(resp.status_code, resp.text, url)
            return resp.json()

    def paged_get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Collect every item of a paged collection by following @odata.nextLink.

        Query params only go out with the first request; the continuation link
        already embeds them. Any failure raises FetchFailed and the items
        gathered so far are dropped.
        """
        params = dict(params or {})
        if page_size:
            params["$top"] = page_size

        items = []
        first_url = url
        while url:
            try:
                data = self.get(url, params or None)
            except (GraphAPIError, requests.RequestException) as e:
                logging.error("Listing %s aborted after %d item(s): %s", first_url, len(items), e)
                raise FetchFailed(first_url, len(items), e) from e
            items.extend(data.get("value", []))
            url = data.get("@odata.nextLink")
            params = None
        return items

    def list_objects(
        self,
        resource: str,
        filter: Optional[str] = None,
        select: Optional[str] = None,
        page_size: Optional[int] = config.GRAPH_PAGE_SIZE,
    ) -> List[Dict[str, Any]]:
        params = {}
        if filter:
            params["$filter"] = filter
        if select:
            params["$select"] = select
        return self.paged_get(self.url(resource), params, page_size=page_size)

    def get_object(
        self, resource: str, object_id: str, select: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Fetch one directory object; None when Graph answers 404."""
        params = {"$select": select} if select else None
        try:
            return self.get(self.url(f"{resource}/{object_id}"), params)
        except GraphAPIError as e:
            if e.status_code == 404:
                return None
            raise


def _retry_after(resp: requests.Response) -> float:
    try:
        return max(1.0, float(resp.headers.get("Retry-After", "2")))
    except ValueError:
        return 2.0
