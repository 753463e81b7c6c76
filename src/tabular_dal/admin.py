"""Instance and cluster administration."""

from typing import ClassVar, Self

from tabular_dal.contexts import MetadataParamType, MetadataUpdatePolicy
from tabular_dal.datatypes import Cluster, Instance, InstanceType, Page
from tabular_dal.engine.executor import CallExecutor, Sleep
from tabular_dal.engine.operations import OperationPoller
from tabular_dal.engine.paginator import Paginator
from tabular_dal.logging import enable_stderr_logging
from tabular_dal.messages import (
    CreateClusterRequest,
    CreateInstanceRequest,
    DeleteClusterRequest,
    DeleteInstanceRequest,
    GetClusterRequest,
    GetInstanceRequest,
    ListClustersRequest,
    ListInstancesRequest,
    UpdateClusterRequest,
    UpdateInstanceRequest,
)
from tabular_dal.params import ClientParams
from tabular_dal.policies.backoff import BackoffPolicy
from tabular_dal.policies.polling import PollingPolicy
from tabular_dal.policies.retry import RetryPolicy
from tabular_dal.protocols import InstanceAdminTransport

# Wildcard instance id selecting the clusters of every instance.
ALL_INSTANCES = "-"


class InstanceAdmin:
    """Manage the instances and clusters of one project.

    Reads and updates are retried for transient failures. Creates and
    deletes are attempted once. Creates and updates start long-running
    operations and return their final result.
    """

    __slots__: ClassVar[tuple[str, ...]] = ("_executor", "_poller", "_project_id", "_transport")

    def __init__(
        self,
        transport: InstanceAdminTransport,
        project_id: str,
        *,
        retry_policy: RetryPolicy | None = None,
        backoff_policy: BackoffPolicy | None = None,
        polling_policy: PollingPolicy | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        self._transport = transport
        self._project_id = project_id
        routing = MetadataUpdatePolicy(resource_name=self.project_name)
        self._executor = CallExecutor(retry_policy, backoff_policy, routing, sleep=sleep)
        self._poller = OperationPoller(self._executor, transport.get_operation, polling_policy)

    @classmethod
    def from_params(cls, transport: InstanceAdminTransport, params: ClientParams) -> Self:
        if params.log_level:
            _ = enable_stderr_logging(params.log_level)
        return cls(
            transport,
            params.project_id,
            retry_policy=params.retry.build(),
            backoff_policy=params.backoff.build(),
            polling_policy=params.polling.build(),
        )

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def project_name(self) -> str:
        return f"projects/{self._project_id}"

    def instance_name(self, instance_id: str) -> str:
        return f"{self.project_name}/instances/{instance_id}"

    def cluster_name(self, instance_id: str, cluster_id: str) -> str:
        return f"{self.instance_name(instance_id)}/clusters/{cluster_id}"

    def iter_instances(self) -> Paginator[ListInstancesRequest, Page[Instance], Instance]:
        """Lazily list the project's instances."""
        return Paginator(
            self._executor,
            self._transport.list_instances,
            lambda token: ListInstancesRequest(parent=self.project_name, page_token=token),
            operation="InstanceAdmin.ListInstances",
        )

    async def list_instances(self) -> list[Instance]:
        return await self.iter_instances().collect()

    async def get_instance(self, instance_id: str) -> Instance:
        name = self.instance_name(instance_id)
        return await self._executor.call(
            self._transport.get_instance,
            GetInstanceRequest(name=name),
            operation="InstanceAdmin.GetInstance",
            metadata_policy=_by_name(name),
        )

    async def create_instance(
        self,
        instance_id: str,
        display_name: str,
        clusters: dict[str, Cluster],
        *,
        instance_type: InstanceType = InstanceType.PRODUCTION,
        labels: dict[str, str] | None = None,
    ) -> Instance:
        """Create an instance with its initial clusters and wait until it is ready."""
        request = CreateInstanceRequest(
            parent=self.project_name,
            instance_id=instance_id,
            instance=Instance(display_name=display_name, type=instance_type, labels=labels or {}),
            clusters={
                cluster_id: cluster.model_copy(
                    update={"location": _location(self._project_id, cluster.location)}
                )
                for cluster_id, cluster in clusters.items()
            },
        )
        operation = await self._executor.call_once(
            self._transport.create_instance,
            request,
            operation="InstanceAdmin.CreateInstance",
        )
        return await self._poller.wait(operation, Instance)

    async def update_instance(
        self,
        instance: Instance,
        update_mask: list[str] | None = None,
    ) -> Instance:
        """Overwrite the fields named in `update_mask` and wait for the result."""
        operation = await self._executor.call(
            self._transport.update_instance,
            UpdateInstanceRequest(instance=instance, update_mask=update_mask or []),
            operation="InstanceAdmin.UpdateInstance",
            metadata_policy=_by_name(instance.name, MetadataParamType.INSTANCE_NAME),
        )
        return await self._poller.wait(operation, Instance)

    async def delete_instance(self, instance_id: str) -> None:
        name = self.instance_name(instance_id)
        await self._executor.call_once(
            self._transport.delete_instance,
            DeleteInstanceRequest(name=name),
            operation="InstanceAdmin.DeleteInstance",
            metadata_policy=_by_name(name),
        )

    def iter_clusters(
        self, instance_id: str = ALL_INSTANCES
    ) -> Paginator[ListClustersRequest, Page[Cluster], Cluster]:
        """Lazily list the clusters of one instance, or of all of them."""
        parent = self.instance_name(instance_id)
        return Paginator(
            self._executor,
            self._transport.list_clusters,
            lambda token: ListClustersRequest(parent=parent, page_token=token),
            operation="InstanceAdmin.ListClusters",
            metadata_policy=MetadataUpdatePolicy(resource_name=parent),
        )

    async def list_clusters(self, instance_id: str = ALL_INSTANCES) -> list[Cluster]:
        return await self.iter_clusters(instance_id).collect()

    async def get_cluster(self, instance_id: str, cluster_id: str) -> Cluster:
        name = self.cluster_name(instance_id, cluster_id)
        return await self._executor.call(
            self._transport.get_cluster,
            GetClusterRequest(name=name),
            operation="InstanceAdmin.GetCluster",
            metadata_policy=_by_name(name),
        )

    async def create_cluster(self, instance_id: str, cluster_id: str, cluster: Cluster) -> Cluster:
        parent = self.instance_name(instance_id)
        request = CreateClusterRequest(
            parent=parent,
            cluster_id=cluster_id,
            cluster=cluster.model_copy(
                update={"location": _location(self._project_id, cluster.location)}
            ),
        )
        operation = await self._executor.call_once(
            self._transport.create_cluster,
            request,
            operation="InstanceAdmin.CreateCluster",
            metadata_policy=MetadataUpdatePolicy(resource_name=parent),
        )
        return await self._poller.wait(operation, Cluster)

    async def update_cluster(self, cluster: Cluster) -> Cluster:
        operation = await self._executor.call(
            self._transport.update_cluster,
            UpdateClusterRequest(cluster=cluster),
            operation="InstanceAdmin.UpdateCluster",
            metadata_policy=_by_name(cluster.name),
        )
        return await self._poller.wait(operation, Cluster)

    async def delete_cluster(self, instance_id: str, cluster_id: str) -> None:
        name = self.cluster_name(instance_id, cluster_id)
        await self._executor.call_once(
            self._transport.delete_cluster,
            DeleteClusterRequest(name=name),
            operation="InstanceAdmin.DeleteCluster",
            metadata_policy=_by_name(name),
        )


def _by_name(
    name: str,
    param_type: MetadataParamType = MetadataParamType.NAME,
) -> MetadataUpdatePolicy:
    return MetadataUpdatePolicy(resource_name=name, param_type=param_type)


def _location(project_id: str, location: str) -> str:
    """Expand a bare zone id into a full location name."""
    if location.startswith("projects/"):
        return location
    return f"projects/{project_id}/locations/{location}"
