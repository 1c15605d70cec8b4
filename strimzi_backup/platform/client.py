"""Typed Kubernetes platform client.

Thin wrapper over the official kubernetes client exposing get/list/create/
update/update_status/watch per ResourceKind. Strimzi custom resources go
through CustomObjectsApi, Secrets through CoreV1Api. Every result is a plain
dictionary in Kubernetes JSON shape, and every ApiException is translated into
the strimzi-backup error taxonomy. No call is retried.
"""

from __future__ import annotations

import functools
import json
import logging
import socket
import threading
from typing import Any, Callable, Iterator, Optional

from kubernetes import client, watch
from kubernetes.client import ApiException

from ..errors import PlatformAPIError, ResourceAlreadyExistsError, ResourceConflictError, ResourceNotFoundError
from ..models.resource_kind import ResourceKind

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


def _status_reason(e: ApiException) -> Optional[str]:
    """Extract the Kubernetes Status reason from an ApiException body."""
    if e.body:
        try:
            body = json.loads(e.body)
        except (TypeError, ValueError):
            body = None
        if isinstance(body, dict) and body.get("reason"):
            return str(body["reason"])
    return e.reason


def translate_api_exception(e: ApiException, action: str, kind: ResourceKind, namespace: str, name: str = "") -> PlatformAPIError:
    """Map an ApiException to the matching PlatformAPIError subclass.

    Args:
        e: Exception raised by the kubernetes client
        action: Verb used in the message (e.g. "create")
        kind: Resource kind of the request
        namespace: Namespace of the request
        name: Resource name (optional for list requests)

    Returns:
        PlatformAPIError (or subclass) to raise
    """
    reason = _status_reason(e)
    target = f"{kind} {name}" if name else str(kind)
    message = f"Failed to {action} {target} in namespace {namespace}: {e.status} {reason or ''}".rstrip()

    if e.status == HTTP_NOT_FOUND:
        return ResourceNotFoundError(message, status=e.status, reason=reason)
    if e.status == HTTP_CONFLICT:
        if reason == "AlreadyExists":
            return ResourceAlreadyExistsError(message, status=e.status, reason=reason)
        return ResourceConflictError(message, status=e.status, reason=reason)
    return PlatformAPIError(message, status=e.status, reason=reason)


class ResourceWatch:
    """Watch on a single named resource.

    Iterating yields (event_type, resource) tuples until the server closes the
    stream or stop() is called. stop() closes the underlying HTTP response, so
    a reader blocked waiting for the next event is released at once.
    """

    def __init__(
        self,
        kind: ResourceKind,
        namespace: str,
        name: str,
        list_func: Callable[..., Any],
        args: tuple,
        kwargs: dict[str, Any],
        to_dict: Callable[[Any], dict[str, Any]],
    ) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self._watch = watch.Watch()
        self._list_func = list_func
        self._args = args
        self._kwargs = kwargs
        self._to_dict = to_dict
        self._lock = threading.Lock()
        self._response: Any = None
        self._stopped = False

    def __iter__(self) -> Iterator[tuple[str, dict[str, Any]]]:
        # Watch.stream reads the function's docstring and signature; wraps keeps both
        @functools.wraps(self._list_func)
        def open_stream(*args: Any, **kwargs: Any) -> Any:
            response = self._list_func(*args, **kwargs)
            with self._lock:
                self._response = response
                stopped = self._stopped
            if stopped:
                _close_response(response)
            return response

        try:
            for event in self._watch.stream(open_stream, *self._args, **self._kwargs):
                event_type = event.get("type", "")
                raw = event.get("raw_object") if event_type in ("ERROR", "BOOKMARK") else event.get("object")
                yield event_type, self._to_dict(raw)
        except ApiException as e:
            if self._stopped:
                return
            raise translate_api_exception(e, "watch", self.kind, self.namespace, self.name) from e
        except Exception:
            # Reading from a response closed by stop() fails; that ends the stream
            if self._stopped:
                logger.debug(f"Watch of {self.kind} {self.name} closed")
                return
            raise

    def stop(self) -> None:
        """Stop the watch and close its HTTP response."""
        with self._lock:
            self._stopped = True
            response, self._response = self._response, None
        self._watch.stop()
        if response is not None:
            _close_response(response)


def _close_response(response: Any) -> None:
    # Shut the socket down first so a read blocked on it returns before close()
    sock = getattr(getattr(response, "connection", None), "sock", None)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Watch socket shutdown failed: {e}")
    response.close()
    release_conn = getattr(response, "release_conn", None)
    if release_conn is not None:
        release_conn()


class PlatformClient:
    """Kubernetes API client handle.

    Built once per run and passed to every orchestrator and waiter.

    Attributes:
        api_client: Configured kubernetes ApiClient
        custom_objects: CustomObjectsApi for Strimzi resources
        core: CoreV1Api for Secrets
    """

    def __init__(self, api_client: client.ApiClient) -> None:
        self.api_client = api_client
        self.custom_objects = client.CustomObjectsApi(api_client)
        self.core = client.CoreV1Api(api_client)

    def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        """Get a single resource.

        Raises:
            ResourceNotFoundError: If the resource does not exist
            PlatformAPIError: For any other API failure
        """
        try:
            if kind.is_core:
                return self._to_dict(self.core.read_namespaced_secret(name, namespace))
            return self.custom_objects.get_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, name
            )
        except ApiException as e:
            raise translate_api_exception(e, "get", kind, namespace, name) from e

    def list(self, kind: ResourceKind, namespace: str, label_selector: Optional[str] = None) -> dict[str, Any]:
        """List resources, optionally filtered by a label selector.

        Returns:
            List object with an "items" key
        """
        kwargs = {"label_selector": label_selector} if label_selector else {}
        try:
            if kind.is_core:
                result = self._to_dict(self.core.list_namespaced_secret(namespace, **kwargs))
            else:
                result = self.custom_objects.list_namespaced_custom_object(
                    kind.group, kind.version, namespace, kind.plural, **kwargs
                )
        except ApiException as e:
            raise translate_api_exception(e, "list", kind, namespace) from e

        result.setdefault("apiVersion", kind.api_version)
        result.setdefault("kind", kind.list_kind)
        if result.get("items") is None:
            result["items"] = []
        return result

    def create(self, kind: ResourceKind, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create a resource.

        Raises:
            ResourceAlreadyExistsError: If a resource with the same name exists
            PlatformAPIError: For any other API failure
        """
        name = (body.get("metadata") or {}).get("name", "")
        try:
            if kind.is_core:
                return self._to_dict(self.core.create_namespaced_secret(namespace, body))
            return self.custom_objects.create_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, body
            )
        except ApiException as e:
            raise translate_api_exception(e, "create", kind, namespace, name) from e

    def update(self, kind: ResourceKind, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """Replace a resource (spec and metadata).

        Raises:
            ResourceConflictError: If the resourceVersion is stale
            PlatformAPIError: For any other API failure
        """
        try:
            if kind.is_core:
                return self._to_dict(self.core.replace_namespaced_secret(name, namespace, body))
            return self.custom_objects.replace_namespaced_custom_object(
                kind.group, kind.version, namespace, kind.plural, name, body
            )
        except ApiException as e:
            raise translate_api_exception(e, "update", kind, namespace, name) from e

    def update_status(self, kind: ResourceKind, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        """Replace the status subresource of a custom resource."""
        if kind.is_core:
            raise ValueError(f"{kind} has no status subresource")
        try:
            return self.custom_objects.replace_namespaced_custom_object_status(
                kind.group, kind.version, namespace, kind.plural, name, body
            )
        except ApiException as e:
            raise translate_api_exception(e, "update status of", kind, namespace, name) from e

    def watch(self, kind: ResourceKind, namespace: str, name: str, timeout_seconds: Optional[int] = None) -> ResourceWatch:
        """Open a watch scoped to one named resource.

        Args:
            kind: Resource kind
            namespace: Namespace of the resource
            name: Resource name (used as a metadata.name field selector)
            timeout_seconds: Server side timeout of the watch stream

        Returns:
            ResourceWatch yielding (event_type, resource) tuples
        """
        kwargs: dict[str, Any] = {"field_selector": f"metadata.name={name}"}
        if timeout_seconds:
            kwargs["timeout_seconds"] = timeout_seconds

        if kind.is_core:
            return ResourceWatch(
                kind, namespace, name, self.core.list_namespaced_secret, (namespace,), kwargs, self._to_dict
            )
        return ResourceWatch(
            kind,
            namespace,
            name,
            self.custom_objects.list_namespaced_custom_object,
            (kind.group, kind.version, namespace, kind.plural),
            kwargs,
            self._to_dict,
        )

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if obj is None:
            return {}
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)
