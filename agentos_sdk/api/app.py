"""
FastAPI application for the AgentOS Agent API.
"""
import logging
from typing import Callable, Optional

from fastapi import FastAPI
from web3 import Web3

from ..auth import AgentAuthenticator, ReplayGuard, ReplayStore, create_replay_store
from ..chain import create_web3
from ..config import AgentOSSettings
from ..store import InMemoryRecordStore, RecordStore
from ..version import __version__
from .dependencies import AgentAPIContext
from .responses import install_error_handlers
from .routes import API_BASE_PATH, API_NAME, router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[AgentOSSettings] = None,
    record_store: Optional[RecordStore] = None,
    w3: Optional[Web3] = None,
    replay_store: Optional[ReplayStore] = None,
    authenticator: Optional[AgentAuthenticator] = None,
    wallet_factory: Optional[Callable] = None,
) -> FastAPI:
    """
    Create and configure the Agent API application.

    Args:
        settings: Process settings (default: read from the environment)
        record_store: Backend for agents, wallets, audit and invoices
        w3: Shared Web3 instance (default: built from settings.rpc_url)
        replay_store: Store for consumed request keys (default: per settings)
        authenticator: Fully built authenticator, overriding replay_store
        wallet_factory: Builds WalletContract-like objects (for tests)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = AgentOSSettings.from_env()

    if authenticator is None:
        if replay_store is None:
            replay_store = create_replay_store(
                settings.replay_ttl_seconds,
                strategy=settings.replay_store,
                redis_url=settings.redis_url,
            )
        authenticator = AgentAuthenticator(
            ReplayGuard(replay_store, strict=settings.replay_strict),
            tolerance_seconds=settings.timestamp_tolerance_seconds,
        )

    if w3 is None and wallet_factory is None:
        w3 = create_web3(settings.rpc_url)

    if record_store is None:
        logger.warning("No record store configured, using a process-local in-memory store")
        record_store = InMemoryRecordStore()

    app = FastAPI(
        title=API_NAME,
        version=__version__,
        openapi_url=f"{API_BASE_PATH}/openapi.json",
        docs_url=None,
        redoc_url=None,
    )
    app.state.agentos = AgentAPIContext(
        settings=settings,
        authenticator=authenticator,
        records=record_store,
        w3=w3,
        wallet_factory=wallet_factory,
    )
    install_error_handlers(app)
    app.include_router(router, prefix=API_BASE_PATH)

    logger.info(
        f"Agent API ready (server signer: {settings.server_signer_enabled}, "
        f"replay strict: {authenticator.replay_guard.strict})"
    )
    return app


def run(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the API from environment settings with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        raise ImportError(
            "Serving the Agent API requires 'uvicorn'. "
            "Install it with 'pip install agentos-sdk[server]'."
        )
    uvicorn.run(create_app(), host=host, port=port)


# For running standalone (development)
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run()
