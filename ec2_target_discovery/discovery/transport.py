"""EC2 Query API transport: SigV4-signed form POSTs over requests."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import boto3
import requests
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.exceptions import BotoCoreError

from ..config import EC2Config
from ..exceptions import TransportError

logger = logging.getLogger(__name__)

DESCRIBE_INSTANCES = "DescribeInstances"


class AWSQueryTransport:
    """Issues signed EC2 Query API calls and returns the raw XML body."""

    def __init__(self, ec2_config: EC2Config):
        self._config = ec2_config
        self._endpoint = ec2_config.effective_endpoint

        session_kwargs: dict[str, Any] = {"region_name": ec2_config.region}
        if ec2_config.access_key:
            session_kwargs["aws_access_key_id"] = ec2_config.access_key
            session_kwargs["aws_secret_access_key"] = ec2_config.secret_key
        elif ec2_config.credential_profile:
            session_kwargs["profile_name"] = ec2_config.credential_profile

        self._boto_session = boto3.Session(**session_kwargs)
        self._http = requests.Session()
        self._http.verify = ec2_config.verify_ssl

    def request(self, action: str, page_token: str) -> bytes:
        """POST one API action; raises TransportError on failure or HTTP >= 400."""
        body = urlencode(self._build_params(action, page_token))
        headers = self._sign(body)
        logger.debug("POST %s Action=%s", self._endpoint, action)

        try:
            resp = self._http.post(self._endpoint, data=body, headers=headers, timeout=self._config.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{action} request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise TransportError(
                f"HTTP {resp.status_code} on {action}: {resp.text}",
                status_code=resp.status_code,
                response_body=resp.text,
            )

        return resp.content

    # ── Internal helpers ────────────────────────────────────────────

    def _build_params(self, action: str, page_token: str) -> dict[str, str]:
        params = {"Action": action, "Version": self._config.api_version}
        if page_token:
            params["NextToken"] = page_token
        if action == DESCRIBE_INSTANCES:
            for i, flt in enumerate(self._config.filters, start=1):
                params[f"Filter.{i}.Name"] = str(flt["name"])
                for j, value in enumerate(flt["values"], start=1):
                    params[f"Filter.{i}.Value.{j}"] = str(value)
        return params

    def _sign(self, body: str) -> dict[str, str]:
        """Return SigV4 headers for a form-encoded POST of ``body``."""
        try:
            credentials = self._boto_session.get_credentials()
        except BotoCoreError as exc:
            raise TransportError(f"Cannot load AWS credentials: {exc}") from exc
        if credentials is None:
            raise TransportError("No AWS credentials found")

        aws_request = AWSRequest(
            method="POST",
            url=self._endpoint,
            data=body,
            headers={"Content-Type": "application/x-www-form-urlencoded; charset=utf-8"},
        )
        try:
            SigV4Auth(credentials, "ec2", self._config.region).add_auth(aws_request)
        except BotoCoreError as exc:
            raise TransportError(f"Cannot sign EC2 request: {exc}") from exc
        return dict(aws_request.headers.items())
