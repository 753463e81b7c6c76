"""HTTP+JSON transport for the instance administration API, using httpx."""

from typing import ClassVar, Self

from pydantic import BaseModel, ValidationError

from tabular_dal.datatypes import Cluster, Instance, JsonValue, Operation, Page
from tabular_dal.errors import RpcError, Status, StatusCode
from tabular_dal.messages import (
    CreateClusterRequest,
    CreateInstanceRequest,
    DeleteClusterRequest,
    DeleteInstanceRequest,
    GetClusterRequest,
    GetInstanceRequest,
    GetOperationRequest,
    ListClustersRequest,
    ListInstancesRequest,
    UpdateClusterRequest,
    UpdateInstanceRequest,
)
from tabular_dal.params import ClientParams
from tabular_dal.protocols import Metadata


try:
    import httpx
except ImportError as e:
    _msg = "httpx is required for the HTTP transport. Install with: uv add 'tabular-dal[http]'"
    raise ImportError(_msg) from e

DEFAULT_ENDPOINT = "https://bigtableadmin.googleapis.com/v2/"

_HTTP_STATUS_CODES: dict[int, StatusCode] = {
    400: StatusCode.INVALID_ARGUMENT,
    401: StatusCode.UNAUTHENTICATED,
    403: StatusCode.PERMISSION_DENIED,
    404: StatusCode.NOT_FOUND,
    409: StatusCode.ABORTED,
    412: StatusCode.FAILED_PRECONDITION,
    429: StatusCode.RESOURCE_EXHAUSTED,
    499: StatusCode.CANCELLED,
    500: StatusCode.INTERNAL,
    501: StatusCode.UNIMPLEMENTED,
    503: StatusCode.UNAVAILABLE,
    504: StatusCode.DEADLINE_EXCEEDED,
}


def status_from_response(response: httpx.Response) -> Status:
    """Build a `Status` from an error response.

    Prefers the canonical status name in the JSON error body and falls back
    to the HTTP status code.
    """
    message = response.reason_phrase
    code: StatusCode | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(error := body.get("error"), dict):
        message = str(error.get("message", message))
        name = error.get("status")
        if isinstance(name, str) and name in StatusCode.__members__:
            code = StatusCode[name]
    if code is None:
        code = _HTTP_STATUS_CODES.get(response.status_code, StatusCode.UNKNOWN)
    return Status(code=code, message=message)


class HttpAdminTransport:
    """Maps the administration RPCs onto the service's REST endpoints.

    Implements InstanceAdminTransport.
    """

    __slots__: ClassVar[tuple[str]] = ("_client",)

    _client: httpx.AsyncClient

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def connect(cls, params: ClientParams, **client_options: object) -> Self:
        """Create a transport for `params`, targeting the emulator when set."""
        base_url = (
            f"http://{params.emulator_host}/v2/" if params.emulator_host else DEFAULT_ENDPOINT
        )
        return cls(httpx.AsyncClient(base_url=base_url, **client_options))  # pyright: ignore[reportArgumentType]

    async def close(self) -> None:
        await self._client.aclose()

    async def list_instances(
        self, request: ListInstancesRequest, metadata: Metadata
    ) -> Page[Instance]:
        body = await self._send("GET", f"{request.parent}/instances", metadata, params=_page(request.page_token))
        return Page[Instance](
            items=[_parse(Instance, i) for i in _list(body, "instances")],
            next_page_token=str(_get(body, "nextPageToken") or ""),
        )

    async def get_instance(self, request: GetInstanceRequest, metadata: Metadata) -> Instance:
        return _parse(Instance, await self._send("GET", request.name, metadata))

    async def create_instance(
        self, request: CreateInstanceRequest, metadata: Metadata
    ) -> Operation:
        payload = {
            "instanceId": request.instance_id,
            "instance": _dump(request.instance),
            "clusters": {k: _dump(c) for k, c in request.clusters.items()},
        }
        body = await self._send("POST", f"{request.parent}/instances", metadata, json=payload)
        return _parse(Operation, body)

    async def update_instance(
        self, request: UpdateInstanceRequest, metadata: Metadata
    ) -> Operation:
        params = {"updateMask": ",".join(request.update_mask)} if request.update_mask else None
        body = await self._send(
            "PATCH",
            request.instance.name,
            metadata,
            params=params,
            json=_dump(request.instance),
        )
        return _parse(Operation, body)

    async def delete_instance(self, request: DeleteInstanceRequest, metadata: Metadata) -> None:
        _ = await self._send("DELETE", request.name, metadata)

    async def list_clusters(
        self, request: ListClustersRequest, metadata: Metadata
    ) -> Page[Cluster]:
        body = await self._send("GET", f"{request.parent}/clusters", metadata, params=_page(request.page_token))
        return Page[Cluster](
            items=[_parse(Cluster, c) for c in _list(body, "clusters")],
            next_page_token=str(_get(body, "nextPageToken") or ""),
        )

    async def get_cluster(self, request: GetClusterRequest, metadata: Metadata) -> Cluster:
        return _parse(Cluster, await self._send("GET", request.name, metadata))

    async def create_cluster(
        self, request: CreateClusterRequest, metadata: Metadata
    ) -> Operation:
        body = await self._send(
            "POST",
            f"{request.parent}/clusters",
            metadata,
            params={"clusterId": request.cluster_id},
            json=_dump(request.cluster),
        )
        return _parse(Operation, body)

    async def update_cluster(
        self, request: UpdateClusterRequest, metadata: Metadata
    ) -> Operation:
        body = await self._send("PUT", request.cluster.name, metadata, json=_dump(request.cluster))
        return _parse(Operation, body)

    async def delete_cluster(self, request: DeleteClusterRequest, metadata: Metadata) -> None:
        _ = await self._send("DELETE", request.name, metadata)

    async def get_operation(self, request: GetOperationRequest, metadata: Metadata) -> Operation:
        return _parse(Operation, await self._send("GET", request.name, metadata))

    async def _send(
        self,
        method: str,
        path: str,
        metadata: Metadata,
        *,
        params: dict[str, str] | None = None,
        json: JsonValue = None,
    ) -> JsonValue:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=list(metadata),
            )
        except httpx.TimeoutException as e:
            status = Status(code=StatusCode.DEADLINE_EXCEEDED, message=str(e) or "request timed out")
            raise RpcError(status, operation=f"{method} {path}", source=e) from e
        except httpx.TransportError as e:
            status = Status(code=StatusCode.UNAVAILABLE, message=str(e) or type(e).__name__)
            raise RpcError(status, operation=f"{method} {path}", source=e) from e

        if response.is_error:
            raise RpcError(status_from_response(response), operation=f"{method} {path}")
        if not response.content:
            return {}
        return response.json()


def _parse[M: BaseModel](model: type[M], body: JsonValue) -> M:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        msg = f"response is not a valid {model.__name__}: {e.error_count()} validation errors"
        raise RpcError(Status(code=StatusCode.INTERNAL, message=msg), source=e) from e


def _page(token: str) -> dict[str, str] | None:
    return {"pageToken": token} if token else None


def _dump(model: BaseModel) -> dict[str, JsonValue]:
    return model.model_dump(mode="json", by_alias=True, exclude_defaults=True)


def _get(body: JsonValue, key: str) -> JsonValue:
    return body.get(key) if isinstance(body, dict) else None


def _list(body: JsonValue, key: str) -> list[JsonValue]:
    value = _get(body, key)
    return value if isinstance(value, list) else []


Transport = HttpAdminTransport
