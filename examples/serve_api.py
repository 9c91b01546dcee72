#!/usr/bin/env python3
"""
Run a development Agent API with one registered agent and linked wallet.
"""
import logging
import os

from agentos_sdk.api import create_app
from agentos_sdk.config import AgentOSSettings
from agentos_sdk.store import InMemoryRecordStore

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    """
    Start the Agent API on localhost.

    Requires AGENT_ADDRESS and WALLET_ADDRESS; chain settings come from
    the AGENTOS_* environment variables.
    """
    import uvicorn

    agent_address = os.environ.get("AGENT_ADDRESS")
    wallet_address = os.environ.get("WALLET_ADDRESS")
    if not agent_address or not wallet_address:
        print("ERROR: AGENT_ADDRESS and WALLET_ADDRESS environment variables are required")
        return

    settings = AgentOSSettings.from_env()
    records = InMemoryRecordStore()
    agent = records.add_agent("dev-agent", agent_address)
    records.link_wallet(agent.id, wallet_address, chain_id=settings.chain_id, label="dev")
    logger.info(f"Registered agent {agent.id} for {agent_address}")

    uvicorn.run(create_app(settings=settings, record_store=records), host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
