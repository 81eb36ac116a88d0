# =============================================================================
# System API Routes
# =============================================================================
#
# Endpoints:
#   GET    /v1/system/info                             - Installed release info
#   GET    /v1/system/dashboard-hidden-service         - Dashboard .onion URL
#   GET    /v1/system/electrum-connection-details      - Electrum over Tor
#   GET    /v1/system/bitcoin-p2p-connection-details   - Bitcoin P2P over Tor
#   GET    /v1/system/update-status                    - Supervisor update progress
#   GET    /v1/system/backup-status                    - Last backup result
#   POST   /v1/system/debug                            - Ask for a debug report
#   GET    /v1/system/debug-result                     - The debug report
#   GET    /v1/system/status                           - Health flags
#   DELETE /v1/system/memory-warning                   - Dismiss the memory warning
#   POST   /v1/system/reboot                           - Ask for a reboot
#   POST   /v1/system/shutdown                         - Ask for a shutdown
#
# Every route only reads or writes files the supervisor owns; nothing here
# acts on the host directly.
#
# =============================================================================

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from nodemanager.auth import AuthContext, bearer_guard, conditional_bearer_guard
from nodemanager.config import Settings
from nodemanager.core.errors import NodeError, StorageError
from nodemanager.storage import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/system", tags=["system"])

# Status and signal file names, as written and read by the supervisor
UPDATE_STATUS = "update-status"
BACKUP_STATUS = "backup-status"
DEBUG_STATUS = "debug-status"
MEMORY_WARNING = "memory-warning"


# =============================================================================
# Response Models
# =============================================================================

class ConnectionDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str
    port: int
    connection_string: str = Field(alias="connectionString")


class SystemStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    high_memory_usage: bool = Field(alias="highMemoryUsage")


# =============================================================================
# Dependencies
# =============================================================================

def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# =============================================================================
# Release & Update
# =============================================================================

@router.get("/info")
async def system_info(
    ctx: AuthContext = Depends(conditional_bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> dict[str, Any]:
    """
    Installed release info.

    Readable before registration so onboarding can show the version.
    """
    try:
        return await storage.signals.read_version_info()
    except StorageError:
        raise NodeError("Unable to get system information")


@router.get("/update-status")
async def update_status(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> dict[str, Any]:
    try:
        return await storage.signals.read_json_status(UPDATE_STATUS)
    except StorageError:
        raise NodeError("Unable to get update status")


@router.get("/backup-status")
async def backup_status(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> dict[str, Any]:
    try:
        return await storage.signals.read_json_status(BACKUP_STATUS)
    except StorageError:
        raise NodeError("Unable to get backup status")


# =============================================================================
# Connection Details
# =============================================================================

@router.get("/dashboard-hidden-service")
async def dashboard_hidden_service(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> str:
    try:
        return await storage.signals.read_hidden_service("web")
    except StorageError:
        raise NodeError("Unable to get hidden service url")


@router.get("/electrum-connection-details", response_model=ConnectionDetails)
async def electrum_connection_details(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    try:
        address = await storage.signals.read_hidden_service("electrum")
    except StorageError:
        raise NodeError("Unable to get Electrum hidden service url")
    port = settings.electrum_port
    # Electrum transport suffix: "t" is plain TCP
    return ConnectionDetails(address=address, port=port, connection_string=f"{address}:{port}:t")


@router.get("/bitcoin-p2p-connection-details", response_model=ConnectionDetails)
async def bitcoin_p2p_connection_details(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    try:
        address = await storage.signals.read_hidden_service("bitcoin-p2p")
    except StorageError:
        raise NodeError("Unable to get Bitcoin P2P hidden service url")
    port = settings.bitcoin_p2p_port
    return ConnectionDetails(address=address, port=port, connection_string=f"{address}:{port}")


# =============================================================================
# Debugging & Health
# =============================================================================

@router.post("/debug")
async def request_debug(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> str:
    try:
        await storage.signals.write_signal("debug")
    except StorageError:
        raise NodeError("Could not write the signal file")
    return "Debug requested"


@router.get("/debug-result")
async def debug_result(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> dict[str, Any]:
    try:
        return await storage.signals.read_json_status(DEBUG_STATUS)
    except StorageError:
        raise NodeError("Unable to get debug results")


@router.get("/status", response_model=SystemStatus)
async def status(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
):
    try:
        high_memory_usage = await storage.signals.status_exists(MEMORY_WARNING)
    except StorageError:
        raise NodeError("Unable to check system status")
    return SystemStatus(high_memory_usage=high_memory_usage)


@router.delete("/memory-warning")
async def clear_memory_warning(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> str:
    try:
        await storage.signals.clear_status(MEMORY_WARNING)
    except StorageError:
        raise NodeError("Unable to dismiss high memory warning")
    return "High memory warning dismissed"


# =============================================================================
# Power
# =============================================================================

@router.post("/reboot")
async def reboot(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> str:
    try:
        await storage.signals.write_signal("reboot")
    except StorageError:
        raise NodeError("Unable to request reboot")
    return "Reboot requested"


@router.post("/shutdown")
async def shutdown(
    ctx: AuthContext = Depends(bearer_guard),
    storage: StorageProvider = Depends(get_storage),
) -> str:
    try:
        await storage.signals.write_signal("shutdown")
    except StorageError:
        raise NodeError("Unable to request shutdown")
    return "Shutdown requested"
