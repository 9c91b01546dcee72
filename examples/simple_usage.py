#!/usr/bin/env python3
"""
Simple example of using the AgentOS SDK.
"""
import os
from agentos_sdk import AgentOSClient
from agentos_sdk.exceptions import AgentOSAPIError

def main():
    """
    Demonstrate basic usage of the AgentOSClient.

    This example shows how to:
    1. Initialize the client with the agent's key
    2. Look up the agent and its linked wallets
    3. Propose a transfer from a governed wallet
    """
    # Read configuration from environment
    BASE_URL = os.environ.get("AGENTOS_BASE_URL", "http://localhost:8000")
    PRIVATE_KEY = os.environ.get("AGENT_PRIVATE_KEY")
    RECIPIENT = os.environ.get("RECIPIENT_ADDRESS")
    TOKEN = os.environ.get("TOKEN_ADDRESS", "0x0000000000000000000000000000000000000000")

    # Verify configuration
    if not PRIVATE_KEY:
        print("ERROR: AGENT_PRIVATE_KEY environment variable is required")
        return

    if not RECIPIENT:
        print("ERROR: RECIPIENT_ADDRESS environment variable is required")
        return

    client = AgentOSClient(BASE_URL, private_key=PRIVATE_KEY)
    print(f"Agent address: {client.address}")

    try:
        me = client.get_me()
        wallets = me["wallets"]
        print(f"Agent: {me['agent']['name']} ({len(wallets)} linked wallets)")
        if not wallets:
            print("ERROR: link a governed wallet to this agent first")
            return

        wallet_address = wallets[0]["wallet_address"]
        result = client.post_transfers_propose(
            wallet_address=wallet_address,
            to=RECIPIENT,
            token=TOKEN,
            amount=10**15,
            context={"reason": "example payout"},
        )

        if result["mode"] == "submitted":
            print(f"Proposal {result['proposalId']} submitted: {result['txHash']}")
        else:
            print(f"Sign and send {result['functionName']} to {result['contractAddress']}")
            print(f"Calldata: {result['calldata']}")
        if result.get("needsApproval"):
            print("The wallet's human must approve this transfer before it executes")

        client.post_audit("transfer_proposed", f"Proposed transfer to {RECIPIENT}", metadata={"mode": result["mode"]})

    except AgentOSAPIError as e:
        print(f"Agent API error [{e.code}]: {e.message}")

if __name__ == "__main__":
    main()
