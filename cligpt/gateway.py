"""HTTP client for the remote chat-completion endpoint."""

import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass

from .errors import GatewayError, ProtocolError, TransportError
from .request import request_body

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TEMPERATURE = 0.7


@dataclass
class Result:
    """Outcome of one round-trip: exactly one of reply / error is set."""

    reply: str | None = None
    error: GatewayError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_reply(payload: bytes | str) -> str:
    """Pull choices[0].message.content out of a response body.

    Raises ProtocolError if the body is not JSON or the path is missing
    or holds something other than a string.
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise ProtocolError(f"invalid JSON in response: {e}") from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise ProtocolError(
            f"response has no choices[0].message.content{_remote_error(data)}"
        ) from None
    if not isinstance(content, str):
        raise ProtocolError(
            f"choices[0].message.content is {type(content).__name__}, expected string"
        )
    return content


def _remote_error(data) -> str:
    """Format the endpoint's own error message, if the body carries one."""
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return f": {err['message']}"
        if isinstance(err, str) and err:
            return f": {err}"
    return ""


class ChatGateway:
    """Sends one chat request per call; no retries, no timeout."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        temperature: float | None = DEFAULT_TEMPERATURE,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def send(self, messages: list[dict], credential: str) -> str:
        """POST the messages and return the assistant's reply text.

        Raises TransportError if the call cannot be completed and
        ProtocolError if the response cannot be understood.
        """
        body = request_body(messages, self.model, self.temperature)
        logger.debug("POST %s (%d messages, %d bytes)", self.url, len(messages), len(body))

        try:
            req = urllib.request.Request(
                self.url,
                data=body,
                headers={
                    "Authorization": f"Bearer {credential}",
                    "Content-Type": "application/json",
                },
                method="POST",
            )
            with urllib.request.urlopen(req) as resp:
                payload = resp.read()
                logger.debug("HTTP %s, %d bytes", resp.status, len(payload))
        except urllib.error.HTTPError as e:
            # The endpoint answered; its body is the only useful detail.
            try:
                payload = e.read()
            except (OSError, http.client.HTTPException):
                payload = b""
            finally:
                e.close()
            logger.debug("HTTP %s, %d bytes", e.code, len(payload))
            detail = ""
            try:
                detail = _remote_error(json.loads(payload))
            except (json.JSONDecodeError, UnicodeDecodeError):
                pass
            raise ProtocolError(f"HTTP {e.code} from {self.url}{detail}") from None
        except urllib.error.URLError as e:
            raise TransportError(f"could not reach {self.url}: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            raise TransportError(f"request to {self.url} failed: {e}") from e
        except ValueError as e:
            # Malformed URL, or header text http.client cannot encode as latin-1.
            raise TransportError(f"cannot send request to {self.url}: {e}") from e

        return extract_reply(payload)

    def complete(self, messages: list[dict], credential: str) -> Result:
        """Like send(), but report failure in the returned Result."""
        try:
            return Result(reply=self.send(messages, credential))
        except GatewayError as e:
            return Result(error=e)
