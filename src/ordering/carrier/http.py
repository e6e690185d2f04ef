"""JSON-over-HTTP plumbing shared by the carrier adapters."""

import requests
import structlog

from ordering.errors import UpstreamRejected, UpstreamUnavailable

logger = structlog.get_logger(__name__)


def _error_message(data, response) -> str:
    if isinstance(data, dict):
        for key in ("detail", "message", "error"):
            if data.get(key):
                return str(data[key])
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            return str(first.get("message", first)) if isinstance(first, dict) else str(first)
    return response.reason or f"HTTP {response.status_code}"


class JsonApi:
    """A base URL, auth headers and a timeout, with failures mapped to pipeline errors."""

    def __init__(self, provider: str, base_url: str, headers: dict, timeout: float, session=None):
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.headers = {"Content-Type": "application/json", "Accept": "application/json", **headers}
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(self, method: str, path: str, payload=None, action: str = "request"):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self.headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.warning("carrier_timeout", provider=self.provider, action=action, url=url)
            raise UpstreamUnavailable(f"{self.provider} {action} timed out", self.provider) from exc
        except requests.RequestException as exc:
            logger.warning("carrier_unreachable", provider=self.provider, action=action, error=str(exc))
            raise UpstreamUnavailable(f"{self.provider} {action} failed: {exc}", self.provider) from exc

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text} if response.text else {}

        if response.status_code >= 500 or response.status_code == 429:
            message = _error_message(data, response)
            logger.warning(
                "carrier_unavailable",
                provider=self.provider,
                action=action,
                status_code=response.status_code,
                message=message,
            )
            raise UpstreamUnavailable(f"{self.provider} {action} failed: {message}", self.provider)
        if response.status_code >= 400:
            message = _error_message(data, response)
            logger.info(
                "carrier_rejected",
                provider=self.provider,
                action=action,
                status_code=response.status_code,
                message=message,
            )
            raise UpstreamRejected(f"{self.provider} {action} failed: {message}", self.provider)

        return data

    def get(self, path: str, action: str = "request"):
        return self.request("GET", path, action=action)

    def post(self, path: str, payload=None, action: str = "request"):
        return self.request("POST", path, payload, action=action)

    def put(self, path: str, payload=None, action: str = "request"):
        return self.request("PUT", path, payload, action=action)
