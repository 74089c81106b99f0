"""JSON-RPC client for an AVA node.

Endpoints follow the node's layout (``/ext/bc/X`` for the AVM,
``/ext/P`` for the platform chain, and so on); each method is called as
``<namespace>.<name>``.
"""

import itertools
from typing import Any, Dict, List, Optional

import requests

from .errors import NodeRequestError
from .logger import get_logger

_log = get_logger(__name__)

DEFAULT_TIMEOUT = 30

# context -> (endpoint path, method namespace)
ENDPOINTS: Dict[str, tuple] = {
    "avm": ("/ext/bc/X", "avm"),
    "platform": ("/ext/P", "platform"),
    "keystore": ("/ext/keystore", "keystore"),
    "info": ("/ext/info", "info"),
    "admin": ("/ext/admin", "admin"),
    "auth": ("/ext/auth", "auth"),
    "health": ("/ext/health", "health"),
}


class NodeClient:
    def __init__(self, host: str = "127.0.0.1", port: int = 9650,
                 protocol: str = "http", timeout: int = DEFAULT_TIMEOUT):
        self.host = host
        self.port = port
        self.protocol = protocol
        self.timeout = timeout
        self._session: Optional[requests.Session] = None
        self._ids = itertools.count(1)
        self.node_id: Optional[str] = None

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"Content-Type": "application/json"})
        return self._session

    def call(self, context: str, method: str, params: Optional[dict] = None) -> Any:
        """Invoke ``method`` on the endpoint that serves ``context``."""
        if context not in ENDPOINTS:
            raise NodeRequestError(f"{context}.{method}", f"no endpoint for context {context}")
        path, namespace = ENDPOINTS[context]
        return self.request(path, f"{namespace}.{method}", params or {})

    def request(self, path: str, method: str, params: dict) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        url = self.base_url + path
        _log.info("POST %s %s", url, method)
        try:
            resp = self._get_session().post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as e:
            raise NodeRequestError(method, str(e))
        except ValueError as e:
            raise NodeRequestError(method, f"invalid JSON response: {e}")

        error = body.get("error")
        if error:
            raise NodeRequestError(method, error.get("message", "unknown error"), error.get("code"))
        return body.get("result")

    # ── Convenience wrappers used by the built-in handlers ──

    def connect(self) -> bool:
        """Fetch the node ID; returns False when the node is unreachable."""
        try:
            self.node_id = self.call("info", "getNodeID").get("nodeID")
        except (NodeRequestError, AttributeError) as e:
            _log.warning("Node at %s not reachable: %s", self.base_url, e)
            return False
        return True

    @property
    def is_connected(self) -> bool:
        return self.node_id is not None

    def get_tx_status(self, tx_id: str) -> str:
        result = self.call("avm", "getTxStatus", {"txID": tx_id})
        if isinstance(result, dict):
            return result.get("status", "Unknown")
        return str(result)

    def list_users(self) -> List[str]:
        return (self.call("keystore", "listUsers") or {}).get("users", [])

    def create_user(self, username: str, password: str) -> bool:
        result = self.call("keystore", "createUser", {"username": username, "password": password})
        return bool((result or {}).get("success"))

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
