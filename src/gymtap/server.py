"""FastMCP server bootstrap for GymTap."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import GymTapSettings, get_settings
from .storage import (
    ChromaKeyValueStore,
    FileKeyValueStore,
    PersistenceGateway,
    StorageError,
)
from .store import SessionStore
from .summary import summarize
from .tools import register_tools


def configure_logging(level: str) -> None:
    """Configure root logging for the GymTap server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def build_gateway(settings: GymTapSettings) -> tuple[PersistenceGateway, dict]:
    """Create the gateway from settings, falling back to local-only storage."""

    sync_metadata = {
        "enabled": settings.sync_enabled,
        "available": False,
        "location": None,
        "collection": settings.sync_collection,
        "error": None,
    }

    synced: ChromaKeyValueStore | None = None
    if settings.sync_enabled:
        candidate = ChromaKeyValueStore(
            settings.chroma_persist_path,
            collection_name=settings.sync_collection,
            host=settings.chroma_host,
            port=settings.chroma_port,
        )
        sync_metadata["location"] = candidate.location
        try:
            candidate.ping()
            synced = candidate
            sync_metadata["available"] = True
        except StorageError as exc:
            sync_metadata["error"] = str(exc)
            logging.getLogger(__name__).warning(
                "Synced storage unavailable; continuing with local storage only",
                extra={"location": candidate.location, "error": str(exc)},
            )

    gateway = PersistenceGateway(
        FileKeyValueStore(settings.data_dir),
        synced,
        key=settings.storage_key,
    )
    return gateway, sync_metadata


def create_server(
    settings: Optional[GymTapSettings] = None,
    *,
    gateway: PersistenceGateway | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with a loaded session store."""

    settings = settings or get_settings()

    if gateway is None:
        gateway, sync_metadata = build_gateway(settings)
    else:
        sync_metadata = {
            "enabled": gateway.sync_enabled,
            "available": gateway.sync_enabled,
            "location": None,
            "collection": None,
            "error": None,
        }

    store = SessionStore(gateway)
    store.load()

    server = FastMCP(
        name="GymTap",
        version=__version__,
        instructions=(
            "GymTap keeps a log of timestamped sessions with notes. Use the tools to "
            "log, end, edit, delete and undo sessions, and to read summary counts."
        ),
    )

    handles = register_tools(server, store=store)

    @server.resource(
        "resource://gymtap/status",
        name="gymtap_status",
        title="GymTap Status",
        description="Provides storage health and session counts for the GymTap server.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing basic runtime state."""

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "storage": {
                "key": gateway.key,
                "local_path": str(settings.data_dir),
                "sync": sync_metadata,
                "slots": [report.to_dict() for report in gateway.inspect()],
            },
            "sessions": {
                **summarize(store.sessions, datetime.now().astimezone()).to_dict(),
                "undo_depth": store.undo_depth,
            },
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "session_store", store)
    setattr(server, "gateway", gateway)
    setattr(server, "sync_metadata", sync_metadata)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the GymTap MCP server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching GymTap MCP server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "session_count": len(getattr(server, "session_store").sessions),
            "sync_available": getattr(server, "sync_metadata", {}).get("available"),
        },
    )
    server.run()


if __name__ == "__main__":
    main()
