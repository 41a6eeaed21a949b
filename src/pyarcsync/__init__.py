"""pyarcsync - Async synchronization between feature stores and ArcGIS feature services."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyarcsync")
except PackageNotFoundError:
    __version__ = "0+local"
from pyarcsync.auth import AuthCache
from pyarcsync.client import ArcSyncClient, SchemaType
from pyarcsync.config import IncomingConfig, LayerConfig, OutgoingConfig, config_schema
from pyarcsync.credentials import (
    Credential,
    CredentialScope,
    CredentialStore,
    Direction,
    JsonFileCredentialStore,
)
from pyarcsync.dumper import FeatureDumper, QueryDumper
from pyarcsync.exceptions import (
    ArcSyncAuthenticationError,
    ArcSyncConfigError,
    ArcSyncError,
    ArcSyncRemoteError,
    ArcSyncTransportError,
    ArcSyncUnsupportedGeometryError,
)
from pyarcsync.geometry import feature_id, normalize_feature, project, pyproj_reprojector
from pyarcsync.models import (
    AuthFailure,
    AuthSuccess,
    Feature,
    FeatureCollection,
    GeometryKind,
    PushRecord,
    RecordOutcome,
    RecordStatus,
)
from pyarcsync.pipelines import PullPipeline, PullState, PushPipeline
from pyarcsync.task import SyncHost, handler

__all__ = [
    "__version__",
    "ArcSyncAuthenticationError",
    "ArcSyncClient",
    "ArcSyncConfigError",
    "ArcSyncError",
    "ArcSyncRemoteError",
    "ArcSyncTransportError",
    "ArcSyncUnsupportedGeometryError",
    "AuthCache",
    "AuthFailure",
    "AuthSuccess",
    "Credential",
    "CredentialScope",
    "CredentialStore",
    "Direction",
    "Feature",
    "FeatureCollection",
    "FeatureDumper",
    "GeometryKind",
    "IncomingConfig",
    "JsonFileCredentialStore",
    "LayerConfig",
    "OutgoingConfig",
    "PullPipeline",
    "PullState",
    "PushPipeline",
    "PushRecord",
    "QueryDumper",
    "RecordOutcome",
    "RecordStatus",
    "SchemaType",
    "SyncHost",
    "config_schema",
    "feature_id",
    "handler",
    "normalize_feature",
    "project",
    "pyproj_reprojector",
]
