# provisioner_core/transport/transport_http.py
import requests
from provisioner_core.logger import get_logger
from provisioner_core.transport.transport_base import (
    BaseRpcTransport, TransportPermanentError, TransportTransientError,
)

log = get_logger("PROV.Transport.HTTP")


class HTTPRpcAdapter(BaseRpcTransport):
    """
    HTTP transport for a single chain node's /v1/chain API.

    Features:
    - Connection errors and timeouts raise TransportTransientError.
    - Non-2xx answers raise TransportPermanentError with the node's error body.
    """
    name = "http"

    def __init__(self, base_url: str, timeout: float = 5.0, session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, body: dict = None) -> dict:
        url = f"{self.base_url}{path}"
        log.debug(f"[HTTP RPC] → {method} {url}")
        try:
            if method == "GET":
                res = self._http.get(url, timeout=self.timeout)
            else:
                res = self._http.post(url, json=body or {}, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportTransientError(f"{url} unreachable: {e}")
        except requests.RequestException as e:
            raise TransportTransientError(f"{url} request failed: {e}")

        if not res.ok:
            try:
                err = res.json()
            except ValueError:
                err = res.text
            log.debug(f"[HTTP RPC] {res.status_code} {url}: {err}")
            raise TransportPermanentError(f"{url} returned {res.status_code}", status=res.status_code, body=err)

        try:
            return res.json()
        except ValueError as e:
            raise TransportPermanentError(f"{url} returned invalid JSON: {e}", status=res.status_code)

    # ------------------------------------------------------------------
    # Chain API
    # ------------------------------------------------------------------
    def get_info(self) -> dict:
        return self._request("GET", "/v1/chain/get_info")

    def get_table_rows(self, **params) -> dict:
        body = {"json": True}
        body.update({k: v for k, v in params.items() if v is not None})
        return self._request("POST", "/v1/chain/get_table_rows", body)

    def get_account(self, name: str):
        """Account record, or None when the node does not know the account."""
        try:
            return self._request("POST", "/v1/chain/get_account", {"account_name": name})
        except TransportPermanentError as e:
            if isinstance(e.body, dict) and e.body.get("message") == "Account lookup":
                return None
            raise

    def push_transaction(self, payload: dict) -> dict:
        return self._request("POST", "/v1/chain/push_transaction", payload)

    def close(self) -> None:
        self._http.close()
