import json
import logging
from typing import Any, List, Optional

import httpx

from models import ChangesetInfo, DecodeFieldError, Settings, TfsInfoError, TfsRequest


class RequestError(TfsInfoError):
    pass


class ServiceError(TfsInfoError):
    pass


class DecodeError(ServiceError):
    pass


def build_request(settings: Settings) -> TfsRequest:
    return TfsRequest(
        tfs_url=settings.tfs_url,
        project_url=settings.project_url,
        user_name=settings.user,
        password=settings.password,
        start_date=settings.start_date,
        end_date=settings.end_date,
    )


def serialize_request(request: TfsRequest) -> bytes:
    try:
        return json.dumps(request.to_wire()).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise RequestError(f"Could not serialize request: {e}") from e


def decode_changesets(body: bytes) -> List[ChangesetInfo]:
    """Decode a service response body into changeset records."""
    try:
        data: Any = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Response is not valid JSON: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise DecodeError(f"Expected a JSON array of changesets, got {type(data).__name__}")
    try:
        return [ChangesetInfo.from_wire(c) for c in data]
    except DecodeFieldError as e:
        raise DecodeError(f"Unexpected changeset shape: {e}") from e


class TfsServiceClient:
    def __init__(
        self,
        service_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.service_url = service_url
        self.timeout = timeout
        self.transport = transport

    def post(self, payload: bytes) -> bytes:
        headers = {"Content-Type": "application/json"}
        try:
            # The body is read in full before the client closes the connection.
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.service_url, content=payload, headers=headers)
                body = resp.read()
        except httpx.HTTPError as e:
            raise ServiceError(f"Request to {self.service_url} failed: {e}") from e
        except httpx.InvalidURL as e:
            raise ServiceError(f"Invalid service URL {self.service_url!r}: {e}") from e

        if not resp.is_success:
            logging.warning(f"Service returned HTTP {resp.status_code}; decoding body anyway")
        return body

    def fetch_changesets(self, payload: bytes) -> List[ChangesetInfo]:
        logging.info("Calling service...")
        return decode_changesets(self.post(payload))
