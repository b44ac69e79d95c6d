"""
Node Control RPC Client

A simple client for the core process's JSON-RPC control endpoint.
"""

from typing import Any, Dict, List, Optional

import requests


class NodeRpcError(Exception):
    """Error from the node control endpoint"""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")


def _unwrap(result: Any) -> Any:
    # older nodes wrap results as [type_byte, payload]
    if isinstance(result, list) and len(result) == 2 and isinstance(result[0], int):
        return result[1]
    return result


class NodeRpcClient:
    """
    Client for a node's control endpoint.

    Only the two calls the deployer needs: ``status`` and ``dial_seeds``.
    """

    DEFAULT_TIMEOUT = 10  # seconds

    def __init__(self, address: str, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the RPC client.

        Args:
            address: ``host:port`` of the control endpoint, or a full URL
            timeout: Request timeout in seconds
        """
        self.url = address if "://" in address else f"http://{address}"
        self.timeout = timeout
        self._request_id = 0

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make an RPC call.

        Args:
            method: RPC method name
            params: Named method parameters

        Returns:
            Result from RPC call

        Raises:
            NodeRpcError: If the request fails or the node returns an error
        """
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params or {},
        }

        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except requests.RequestException as e:
            raise NodeRpcError(-1, f"Request to {self.url} failed: {e}") from e
        except ValueError as e:
            raise NodeRpcError(-1, f"Invalid response from {self.url}: {e}") from e

        error = result.get("error")
        if error:
            if isinstance(error, dict):
                raise NodeRpcError(
                    code=error.get("code", -1),
                    message=error.get("message", "Unknown error"),
                    data=error.get("data"),
                )
            raise NodeRpcError(-1, str(error))

        return _unwrap(result.get("result"))

    def status(self) -> Dict[str, Any]:
        """Get node status"""
        return self.call("status")

    def pub_key(self) -> Any:
        """
        Get the node's validator public key from its status.

        Raises:
            NodeRpcError: If the status carries no public key
        """
        status = self.status() or {}
        key = status.get("pub_key")
        if key is None:
            key = (status.get("validator_info") or {}).get("pub_key")
        if key is None:
            raise NodeRpcError(-1, f"No pub_key in status from {self.url}")
        return key

    def dial_seeds(self, seeds: List[str]) -> Any:
        """Instruct the node to dial the given ``host:port`` peers"""
        return self.call("dial_seeds", {"seeds": list(seeds)})
