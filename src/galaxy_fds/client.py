"""High-level Galaxy FDS client facade.

Composes the signing engine, the listing protocol and the ACL translator
with a transport. Every service call returns either its parsed result or a
:class:`~galaxy_fds.errors.ServiceError` value for non-200 responses; no
call is retried.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.parse
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

from galaxy_fds import acl as acl_translator
from galaxy_fds import listing, metrics
from galaxy_fds.auth import (
    CONTENT_TYPE,
    DATE,
    DEFAULT_BASE_URI,
    SigningEngine,
    format_date,
    quote_path,
    resource_path_from_uri,
)
from galaxy_fds.config import FDSConfig
from galaxy_fds.errors import ServiceError, TranslationError
from galaxy_fds.models import (
    AccessControlList,
    Credential,
    ListingCursor,
    ObjectMetadata,
    ObjectSummary,
    QuotaPolicy,
    SignableRequest,
)
from galaxy_fds.transport import HttpResponse, HttpxTransport, Transport

logger = logging.getLogger(__name__)

HTTP_OK = 200
APPLICATION_JSON = "application/json"


class GalaxyFDSClient:
    """Client for the Galaxy FDS service.

    The client keeps no mutable per-call state: the delimiter is a per-call
    parameter whose default comes from construction.

    Attributes:
        credential: The signing credential.
        endpoint: Service base URI, always ending with ``/``.
        signer: The SigningEngine used for every request.
        delimiter: Default listing delimiter.
    """

    def __init__(
        self,
        credential: Credential,
        transport: Transport | None = None,
        endpoint: str = DEFAULT_BASE_URI,
        sign_algorithm: str = "sha1",
        delimiter: str = listing.DEFAULT_DELIMITER,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the client.

        Args:
            credential: The signing credential.
            transport: Transport used to send requests. Defaults to HttpxTransport.
            endpoint: Service base URI.
            sign_algorithm: Signing digest name.
            delimiter: Default listing delimiter.
            clock: Source of the current epoch time, used for Date headers.

        Raises:
            ConfigurationError: If the signing algorithm is not supported.
        """
        self.signer = SigningEngine(sign_algorithm)
        self.credential = credential
        self.endpoint = endpoint if endpoint.endswith("/") else endpoint + "/"
        self.delimiter = delimiter
        self.transport = transport if transport is not None else HttpxTransport()
        self._clock = clock

    @classmethod
    def from_config(cls, config: FDSConfig, transport: Transport | None = None) -> GalaxyFDSClient:
        """Build a client from a loaded FDSConfig."""
        if transport is None:
            transport = HttpxTransport(timeout=config.client.timeout)
        return cls(
            credential=Credential(
                access_key_id=config.credential.access_key_id,
                access_secret=config.credential.access_secret,
            ),
            transport=transport,
            endpoint=config.client.endpoint,
            sign_algorithm=config.client.sign_algorithm,
            delimiter=config.client.delimiter,
        )

    # -- Request construction ------------------------------------------------------

    def format_uri(self, resource: str, *params: str | tuple[str, str]) -> str:
        """Join the endpoint, a resource and query parameters.

        Args:
            resource: ``bucket`` or ``bucket/object``, unencoded.
            *params: Bare subresource names or ``(name, value)`` pairs.

        Returns:
            The absolute URI.
        """
        uri = self.endpoint + quote_path(resource.lstrip("/"))
        encoded = []
        for param in params:
            if isinstance(param, tuple):
                name, value = param
                encoded.append(f"{name}={urllib.parse.quote(value, safe='')}")
            else:
                encoded.append(param)
        if encoded:
            uri += "?" + "&".join(encoded)
        return uri

    def prepare_request_headers(
        self,
        method: str,
        uri: str,
        content_type: str | None = None,
        metadata: ObjectMetadata | None = None,
        has_body: bool = False,
    ) -> dict[str, str]:
        """Build the signed header set for a request.

        Explicit metadata wins over the computed Date and Content-Type
        headers when names collide; the signature covers the merged result.

        Args:
            method: HTTP method.
            uri: Absolute request URI.
            content_type: Optional Content-Type.
            metadata: Optional caller metadata headers.
            has_body: Whether the request carries a body.

        Returns:
            The headers to send, including Authorization.
        """
        headers: dict[str, str] = {DATE: format_date(self._clock())}
        if content_type:
            headers[CONTENT_TYPE] = content_type

        if metadata is not None:
            for name, value in metadata.to_headers().items():
                for existing in [k for k in headers if k.lower() == name.lower()]:
                    del headers[existing]
                headers[name] = value

        path, subresource = resource_path_from_uri(uri, self.endpoint)
        request = SignableRequest(
            http_method=method,
            resource_path=path,
            subresource=subresource,
            headers=headers,
            has_body=has_body,
        )
        return self.signer.sign_request(request, self.credential)

    def generate_presigned_uri(
        self,
        bucket_name: str,
        object_name: str,
        expiration: int | datetime,
        http_method: str = "GET",
    ) -> str:
        """Generate a URI that permits one request until ``expiration``.

        Args:
            bucket_name: The bucket.
            object_name: The object.
            expiration: Absolute expiration, epoch seconds or aware datetime.
            http_method: The method the URI is valid for.

        Returns:
            The presigned URI.
        """
        return self.signer.presign(
            http_method,
            f"/{bucket_name}/{object_name}",
            self.credential,
            expiration,
            base_uri=self.endpoint,
        )

    def _send(
        self,
        operation: str,
        method: str,
        uri: str,
        content_type: str | None = None,
        body: bytes | None = None,
    ) -> HttpResponse | ServiceError:
        headers = self.prepare_request_headers(method, uri, content_type, has_body=body is not None)
        logger.debug(
            "%s: %s %s",
            operation,
            method,
            uri,
            extra={"method": method, "operation": operation},
        )
        response = self.transport.send(method, uri, headers, body)
        if response.status_code != HTTP_OK:
            logger.warning(
                "%s failed, status=%d",
                operation,
                response.status_code,
                extra={"operation": operation, "status": response.status_code},
            )
            metrics.record_service_error(operation)
            return ServiceError(
                operation=operation, status_code=response.status_code, body=response.body
            )
        return response

    # -- Listing ---------------------------------------------------------------------

    def list_objects(
        self, bucket_name: str, prefix: str = "", delimiter: str | None = None
    ) -> ListingCursor | ServiceError:
        """Fetch the first page of a bucket listing.

        Args:
            bucket_name: The bucket.
            prefix: Name prefix filter.
            delimiter: Grouping delimiter; defaults to the client delimiter.

        Returns:
            The first page, or a ServiceError.
        """
        if delimiter is None:
            delimiter = self.delimiter
        return self._fetch_page("list_objects", listing.first_page(bucket_name, prefix, delimiter))

    def list_next_batch_of_objects(
        self, previous: ListingCursor, delimiter: str | None = None
    ) -> ListingCursor | ServiceError | None:
        """Fetch the page after ``previous``.

        Returns:
            The next page, None when ``previous`` is exhausted (no request is
            sent), or a ServiceError.
        """
        if delimiter is None:
            delimiter = self.delimiter
        request = listing.advance(previous, delimiter)
        if request is None:
            return None
        return self._fetch_page("list_next_batch_of_objects", request)

    def iter_objects(
        self, bucket_name: str, prefix: str = "", delimiter: str | None = None
    ) -> Iterator[ObjectSummary]:
        """Yield every object summary of a listing, page after page.

        Raises:
            FDSServiceException: If any page request fails.
        """
        page = self.list_objects(bucket_name, prefix, delimiter)
        while True:
            if isinstance(page, ServiceError):
                page.raise_for_error()
            yield from page.items
            if not page.has_more:
                return
            page = self.list_next_batch_of_objects(page, delimiter)

    def _fetch_page(
        self, operation: str, request: listing.ListingRequest
    ) -> ListingCursor | ServiceError:
        uri = self.format_uri(request.bucket_name, *request.query_params())
        result = self._send(operation, "GET", uri, APPLICATION_JSON)
        if isinstance(result, ServiceError):
            return result
        metrics.record_listing_page()
        logger.debug(
            "Fetched listing page of %s",
            request.bucket_name,
            extra={"bucket": request.bucket_name, "marker": request.marker},
        )
        return listing.cursor_from_response(_decode(result), request.bucket_name)

    # -- ACL ---------------------------------------------------------------------------

    def get_bucket_acl(self, bucket_name: str) -> AccessControlList | ServiceError | None:
        return self._get_acl("get_bucket_acl", bucket_name)

    def set_bucket_acl(self, bucket_name: str, acl: AccessControlList) -> ServiceError | None:
        return self._set_acl("set_bucket_acl", bucket_name, acl)

    def get_object_acl(
        self, bucket_name: str, object_name: str
    ) -> AccessControlList | ServiceError | None:
        return self._get_acl("get_object_acl", f"{bucket_name}/{object_name}")

    def set_object_acl(
        self, bucket_name: str, object_name: str, acl: AccessControlList
    ) -> ServiceError | None:
        return self._set_acl("set_object_acl", f"{bucket_name}/{object_name}", acl)

    def _get_acl(self, operation: str, resource: str) -> AccessControlList | ServiceError | None:
        result = self._send(operation, "GET", self.format_uri(resource, "acl"), APPLICATION_JSON)
        if isinstance(result, ServiceError):
            return result
        return acl_translator.to_acl(acl_translator.policy_from_wire(_decode(result)))

    def _set_acl(
        self, operation: str, resource: str, acl: AccessControlList
    ) -> ServiceError | None:
        policy = acl_translator.to_policy(acl, self.credential.access_key_id)
        if policy is None:
            raise TranslationError("An ACL is required.")
        body = json.dumps(acl_translator.policy_to_wire(policy)).encode("utf-8")
        uri = self.format_uri(resource, "acl")
        result = self._send(operation, "PUT", uri, APPLICATION_JSON, body)
        return result if isinstance(result, ServiceError) else None

    # -- Metadata and quota --------------------------------------------------------------

    def get_object_metadata(
        self, bucket_name: str, object_name: str
    ) -> ObjectMetadata | ServiceError:
        """Fetch the standard and user metadata of an object."""
        uri = self.format_uri(f"{bucket_name}/{object_name}", "metadata")
        result = self._send("get_object_metadata", "GET", uri, APPLICATION_JSON)
        if isinstance(result, ServiceError):
            return result
        return ObjectMetadata.from_headers(result.headers)

    def get_bucket_quota(self, bucket_name: str) -> QuotaPolicy | ServiceError:
        result = self._send(
            "get_bucket_quota", "GET", self.format_uri(bucket_name, "quota"), APPLICATION_JSON
        )
        if isinstance(result, ServiceError):
            return result
        return QuotaPolicy.from_wire(_decode(result))

    def set_bucket_quota(self, bucket_name: str, quota: QuotaPolicy) -> ServiceError | None:
        body = json.dumps(quota.to_wire()).encode("utf-8")
        result = self._send(
            "set_bucket_quota", "PUT", self.format_uri(bucket_name, "quota"), APPLICATION_JSON, body
        )
        return result if isinstance(result, ServiceError) else None

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> GalaxyFDSClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _decode(response: HttpResponse) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise TranslationError(f"Response body is not valid JSON: {exc}") from exc
